"""
User application service - orchestrates domain rules, persistence and bulk processing
"""
from typing import Callable, List, Optional, Sequence

from application.bulk.coordinator import BulkCoordinator
from application.bulk.types import BatchResult, BulkConfigurationError, OperationKind
from core.logging_config import get_logger
from core.metrics import ServiceMetrics
from domain.common.exceptions import InvalidInsertException, UserNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.user.entity import User
from domain.user.service import UserDomainService


logger = get_logger(__name__)


class UserApplicationService:
    """Single and bulk user operations.

    The service is also the entity store of its own bulk coordinator: every
    ``create``/``update`` opens a fresh unit of work, so bulk workers never
    share a database session.
    """

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        *,
        max_bulk_ops: int = 10,
        bulk_timeout: Optional[float] = None,
        metrics: Optional[ServiceMetrics] = None,
        domain_service: Optional[UserDomainService] = None,
    ):
        if isinstance(max_bulk_ops, bool) or not isinstance(max_bulk_ops, int) or max_bulk_ops < 1:
            raise BulkConfigurationError(f"max_bulk_ops must be a positive int, got {max_bulk_ops!r}")
        self._uow_factory = uow_factory
        self._domain_service = domain_service or UserDomainService()
        self._bulk = BulkCoordinator(self, max_bulk_ops, timeout=bulk_timeout, metrics=metrics)

    @property
    def max_bulk_ops(self) -> int:
        return self._bulk.concurrency_limit

    async def list_users(self) -> List[User]:
        async with self._uow_factory(readonly=True) as uow:
            return await uow.user_repository.get_all()

    async def get_user(self, user_id: int) -> User:
        async with self._uow_factory(readonly=True) as uow:
            user = await uow.user_repository.get_by_id(user_id)
        if not user:
            raise UserNotFoundException(user_id)
        return user

    async def create_user(self, user: User) -> int:
        """Insert one user and return the id assigned by the database"""
        if user.id != 0:
            raise InvalidInsertException(user.id)
        prepared = self._domain_service.prepare_for_storage(user)
        async with self._uow_factory() as uow:
            created = await uow.user_repository.create(prepared)
        logger.info("user_created", user_id=created.id, account_id=created.account_id)
        return created.id

    async def update_user(self, user: User) -> None:
        prepared = self._domain_service.prepare_for_storage(user)
        async with self._uow_factory() as uow:
            await uow.user_repository.update(prepared)
        logger.info("user_updated", user_id=user.id)

    async def delete_user(self, user_id: int) -> None:
        async with self._uow_factory() as uow:
            deleted = await uow.user_repository.delete(user_id)
        if not deleted:
            raise UserNotFoundException(user_id)
        logger.info("user_deleted", user_id=user_id)

    async def create_users(self, users: Sequence[User]) -> BatchResult[User]:
        return await self._bulk.run_batch(users, OperationKind.CREATE)

    async def update_users(self, users: Sequence[User]) -> BatchResult[User]:
        return await self._bulk.run_batch(users, OperationKind.UPDATE)

    # Entity store used by the bulk coordinator
    async def create(self, user: User) -> int:
        return await self.create_user(user)

    async def update(self, user: User) -> None:
        await self.update_user(user)
