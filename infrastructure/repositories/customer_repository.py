"""
Customer repository - read-only SQLAlchemy implementation
"""
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from domain.customer.entity import Customer
from domain.customer.repository import CustomerRepository
from infrastructure.models.customer import CustomerModel


class SQLAlchemyCustomerRepository(CustomerRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: CustomerModel) -> Customer:
        return Customer(
            id=model.id,
            name=model.name,
            street_address=model.street_address,
            city=model.city,
            state=model.state,
            country=model.country,
        )

    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        result = await self.session.execute(
            select(CustomerModel).where(CustomerModel.id == customer_id)
        )
        db_customer = result.scalar_one_or_none()
        return self._to_entity(db_customer) if db_customer else None

    async def get_all(self) -> List[Customer]:
        result = await self.session.execute(select(CustomerModel).order_by(CustomerModel.id))
        return [self._to_entity(row) for row in result.scalars().all()]
