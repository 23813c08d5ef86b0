"""Pytest bootstrap configuration.

Settings are read at import time, so the database URL has to point at
sqlite before anything imports ``core.config``.
"""
import os
import tempfile

os.environ.setdefault(
    "DATABASE__URL",
    f"sqlite+aiosqlite:///{os.path.join(tempfile.gettempdir(), f'accountd-tests-{os.getpid()}.db')}",
)
os.environ.setdefault("DEBUG", "false")

import asyncio
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

import pytest

from domain.common.exceptions import (
    UserAlreadyExistsException,
    UserNotFoundException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.customer.entity import Customer
from domain.customer.repository import CustomerRepository
from domain.user.entity import Role, User
from domain.user.repository import UserRepository


@dataclass
class InMemoryState:
    users: Dict[int, User] = field(default_factory=dict)
    customers: Dict[int, Customer] = field(default_factory=dict)
    next_id: int = 0
    commits: int = 0
    rollbacks: int = 0


class InMemoryUserRepository(UserRepository):
    def __init__(self, state: InMemoryState):
        self._state = state

    async def create(self, user: User) -> User:
        if any(u.email == user.email for u in self._state.users.values()):
            raise UserAlreadyExistsException(user.email)
        self._state.next_id += 1
        stored = replace(user, id=self._state.next_id)
        self._state.users[stored.id] = stored
        return stored

    async def get_by_id(self, user_id: int) -> Optional[User]:
        return self._state.users.get(user_id)

    async def get_all(self) -> List[User]:
        return [self._state.users[k] for k in sorted(self._state.users)]

    async def update(self, user: User) -> User:
        if user.id not in self._state.users:
            raise UserNotFoundException(user.id)
        if any(u.email == user.email and u.id != user.id for u in self._state.users.values()):
            raise UserAlreadyExistsException(user.email)
        self._state.users[user.id] = user
        return user

    async def delete(self, user_id: int) -> bool:
        return self._state.users.pop(user_id, None) is not None


class InMemoryCustomerRepository(CustomerRepository):
    def __init__(self, state: InMemoryState):
        self._state = state

    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        return self._state.customers.get(customer_id)

    async def get_all(self) -> List[Customer]:
        return [self._state.customers[k] for k in sorted(self._state.customers)]


class InMemoryUnitOfWork(AbstractUnitOfWork):
    def __init__(self, state: InMemoryState, *, readonly: bool = False) -> None:
        super().__init__(readonly=readonly)
        self._state = state

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        self.user_repository = InMemoryUserRepository(self._state)
        self.customer_repository = InMemoryCustomerRepository(self._state)
        return self

    async def commit(self) -> None:
        self._state.commits += 1
        self._committed = True

    async def rollback(self) -> None:
        self._state.rollbacks += 1


class RecordingStore:
    """Entity store stub that records concurrency and can fail chosen emails.

    With ``gate`` set every call blocks until the gate event is released.
    """

    def __init__(
        self,
        *,
        first_id: int = 1,
        duplicate_emails=(),
        crash_emails=(),
        hang_emails=(),
        delay: float = 0.0,
        gate: Optional[asyncio.Event] = None,
    ):
        self.next_id = first_id
        self.duplicate_emails = set(duplicate_emails)
        self.crash_emails = set(crash_emails)
        self.hang_emails = set(hang_emails)
        self.delay = delay
        self.gate = gate
        self.known_ids: set = set()
        self.active = 0
        self.peak = 0
        self.calls: List[str] = []

    async def _run(self, user: User) -> None:
        self.calls.append(user.email)
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
            if self.delay:
                await asyncio.sleep(self.delay)
            if user.email in self.hang_emails:
                await asyncio.Event().wait()
            if user.email in self.crash_emails:
                raise RuntimeError("connection reset by peer")
        finally:
            self.active -= 1

    async def create(self, user: User) -> int:
        await self._run(user)
        if user.email in self.duplicate_emails:
            raise UserAlreadyExistsException(user.email)
        new_id = self.next_id
        self.next_id += 1
        self.known_ids.add(new_id)
        return new_id

    async def update(self, user: User) -> None:
        await self._run(user)
        if user.id not in self.known_ids:
            raise UserNotFoundException(user.id)


def make_user(n: int, **overrides) -> User:
    values = dict(
        account_id=1,
        name=f"user {n}",
        email=f"user{n}@example.com",
        role=Role.UNRESTRICTED,
        password="s3cret-pass",
    )
    values.update(overrides)
    return User(**values)


@pytest.fixture
def make_users():
    def _make(count: int, **overrides) -> List[User]:
        return [make_user(i, **overrides) for i in range(1, count + 1)]
    return _make


@pytest.fixture
def store_factory():
    return RecordingStore


@pytest.fixture
def memory_state() -> InMemoryState:
    state = InMemoryState()
    state.customers[1] = Customer(
        id=1, name="Peter Tork", street_address="1 Monkees Way", city="Boulder", state="CO", country="USA"
    )
    state.customers[2] = Customer(id=2, name="Mama Cass", city="Denver", state="CO", country="USA")
    return state


@pytest.fixture
def uow_factory(memory_state):
    def _factory(**kwargs) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(memory_state, **kwargs)
    return _factory
