"""Value types shared by the bulk processor, request builder and coordinator."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Generic, Iterable, TypeVar

from application.ports.entity_store import EntityStore
from shared.codes import BusinessCode


E = TypeVar("E")


class BulkConfigurationError(ValueError):
    """Raised when a processor or coordinator is built with invalid arguments."""


class OperationKind(IntEnum):
    CREATE = 0
    UPDATE = 1
    # Known to the service but rejected by bulk workers
    READ = 2
    DELETE = 3


class OutcomeStatus(IntEnum):
    BAD_REQUEST = 0
    OK = 1
    CREATED = 2
    CONFLICT = 3
    SERVER_ERROR = 4
    NOT_FOUND = 5
    TIMED_OUT = 6


SUCCESS_STATUSES = frozenset({OutcomeStatus.OK, OutcomeStatus.CREATED})


def validate_concurrency_limit(concurrency_limit: int) -> int:
    if isinstance(concurrency_limit, bool) or not isinstance(concurrency_limit, int):
        raise BulkConfigurationError(f"concurrency limit must be an int, got {concurrency_limit!r}")
    if concurrency_limit < 1:
        raise BulkConfigurationError(f"concurrency limit must be greater than 0, got {concurrency_limit}")
    return concurrency_limit


@dataclass
class Outcome(Generic[E]):
    """Result of one bulk item. ``entity`` echoes the input, with its id on create."""

    status: OutcomeStatus
    entity: E
    error_message: str = ""
    error_reason: int = BusinessCode.SUCCESS

    @property
    def succeeded(self) -> bool:
        return self.status in SUCCESS_STATUSES


def initial_overall_status(kind: int) -> OutcomeStatus:
    return OutcomeStatus.CREATED if kind == OperationKind.CREATE else OutcomeStatus.OK


def aggregate_overall_status(kind: int, statuses: Iterable[OutcomeStatus]) -> OutcomeStatus:
    """Overall status for a batch; independent of the order of ``statuses``."""
    if all(status in SUCCESS_STATUSES for status in statuses):
        return initial_overall_status(kind)
    return OutcomeStatus.CONFLICT


@dataclass
class BatchResult(Generic[E]):
    """Aggregate of a bulk request, built incrementally as outcomes arrive.

    ``outcomes`` is in completion order, not submission order.
    """

    overall_status: OutcomeStatus
    outcomes: list[Outcome[E]] = field(default_factory=list)

    @classmethod
    def start(cls, kind: int) -> "BatchResult[E]":
        return cls(overall_status=initial_overall_status(kind))

    def record(self, outcome: Outcome[E]) -> None:
        self.outcomes.append(outcome)
        if not outcome.succeeded:
            self.overall_status = OutcomeStatus.CONFLICT

    @property
    def failed(self) -> list[Outcome[E]]:
        return [o for o in self.outcomes if not o.succeeded]


@dataclass(frozen=True)
class Request(Generic[E]):
    """One bulk item. ``result`` is written once by a worker and read once by its submitter."""

    index: int
    entity: E
    kind: OperationKind
    store: EntityStore[E] = field(repr=False)
    result: "asyncio.Future[Outcome[E]]" = field(repr=False, compare=False)

    @property
    def abandoned(self) -> bool:
        return self.result.cancelled()

    def resolve(self, outcome: Outcome[E]) -> bool:
        """Publish the outcome; returns False if the cell was already settled."""
        if self.result.done():
            return False
        self.result.set_result(outcome)
        return True

    def abandon(self) -> None:
        if not self.result.done():
            self.result.cancel()


@dataclass
class BulkRequest(Generic[E]):
    kind: OperationKind
    requests: list[Request[E]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.requests)


__all__ = [
    "BulkConfigurationError",
    "OperationKind",
    "OutcomeStatus",
    "SUCCESS_STATUSES",
    "Outcome",
    "BatchResult",
    "Request",
    "BulkRequest",
    "initial_overall_status",
    "aggregate_overall_status",
    "validate_concurrency_limit",
]
