"""
User repository - SQLAlchemy implementation of data access
"""
from contextlib import nullcontext
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from domain.user.entity import User
from domain.user.repository import UserRepository
from infrastructure.models.user import UserModel
from core.logging_config import get_logger
from core.metrics import ServiceMetrics
from domain.common.exceptions import (
    UserAlreadyExistsException,
    UserNotFoundException,
)


logger = get_logger(__name__)


class SQLAlchemyUserRepository(UserRepository):
    """SQLAlchemy implementation of the user repository"""

    def __init__(self, session: AsyncSession, metrics: Optional[ServiceMetrics] = None):
        self.session = session
        self._metrics = metrics

    def _timed(self, operation: str):
        if self._metrics is None:
            return nullcontext()
        return self._metrics.time_db("users", operation)

    def _to_entity(self, model: UserModel) -> User:
        return User(
            account_id=model.account_id,
            id=model.id,
            name=model.name,
            email=model.email,
            role=model.role,
            password=model.password,
        )

    def _to_model(self, entity: User) -> UserModel:
        return UserModel(
            account_id=entity.account_id,
            name=entity.name,
            email=entity.email,
            role=int(entity.role),
            password=entity.password,
        )

    async def _conflict(self, exc: IntegrityError, user: User, event: str) -> None:
        """Translate a unique-key violation on email; anything else is re-raised"""
        await self.session.rollback()
        if "email" in str(exc).lower():
            logger.warning(event, field="email", user_id=user.id, email=user.email)
            raise UserAlreadyExistsException(user.email) from exc
        raise exc

    async def create(self, user: User) -> User:
        """Insert a user; the id is assigned by the database"""
        with self._timed("insert"):
            db_user = self._to_model(user)
            self.session.add(db_user)
            try:
                await self.session.flush()
            except IntegrityError as e:
                await self._conflict(e, user, "create_user_conflict")
            await self.session.refresh(db_user)
            return self._to_entity(db_user)

    async def get_by_id(self, user_id: int) -> Optional[User]:
        with self._timed("select"):
            result = await self.session.execute(
                select(UserModel).where(UserModel.id == user_id)
            )
            db_user = result.scalar_one_or_none()
        return self._to_entity(db_user) if db_user else None

    async def get_all(self) -> List[User]:
        with self._timed("select"):
            result = await self.session.execute(select(UserModel).order_by(UserModel.id))
            db_users = result.scalars().all()
        return [self._to_entity(db_user) for db_user in db_users]

    async def update(self, user: User) -> User:
        with self._timed("update"):
            result = await self.session.execute(
                select(UserModel).where(UserModel.id == user.id)
            )
            db_user = result.scalar_one_or_none()

            if not db_user:
                raise UserNotFoundException(user.id)

            db_user.account_id = user.account_id
            db_user.name = user.name
            db_user.email = user.email
            db_user.role = int(user.role)
            db_user.password = user.password

            try:
                await self.session.flush()
            except IntegrityError as e:
                await self._conflict(e, user, "update_user_conflict")
            await self.session.refresh(db_user)
            return self._to_entity(db_user)

    async def delete(self, user_id: int) -> bool:
        with self._timed("delete"):
            result = await self.session.execute(
                select(UserModel).where(UserModel.id == user_id)
            )
            db_user = result.scalar_one_or_none()

            if not db_user:
                return False

            await self.session.delete(db_user)
            await self.session.flush()
            return True
