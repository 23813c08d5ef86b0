"""
Customer application service (read-only)
"""
from typing import Callable, List

from domain.common.exceptions import CustomerNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.customer.entity import Customer


class CustomerApplicationService:
    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]):
        self._uow_factory = uow_factory

    async def list_customers(self) -> List[Customer]:
        async with self._uow_factory(readonly=True) as uow:
            return await uow.customer_repository.get_all()

    async def get_customer(self, customer_id: int) -> Customer:
        async with self._uow_factory(readonly=True) as uow:
            customer = await uow.customer_repository.get_by_id(customer_id)
        if not customer:
            raise CustomerNotFoundException(customer_id)
        return customer
