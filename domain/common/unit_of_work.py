"""Unit of Work abstraction"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.user.repository import UserRepository
from domain.customer.repository import CustomerRepository


class AbstractUnitOfWork(ABC):
    """Transaction boundary used by the application layer"""

    user_repository: UserRepository
    customer_repository: CustomerRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly
        self.user_repository = None  # type: ignore[assignment]
        self.customer_repository = None  # type: ignore[assignment]

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        else:
            # commit only when writable and not already committed explicitly
            if not self._readonly and not self._committed:
                await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
