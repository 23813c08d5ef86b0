"""Runs a whole batch through a ``BulkProcessor`` and aggregates the outcomes."""
from __future__ import annotations

import asyncio
import time
from typing import Iterable, Optional, TypeVar, Generic

from application.bulk.builder import build_bulk_request
from application.bulk.processor import BulkProcessor
from application.bulk.types import (
    BatchResult,
    BulkConfigurationError,
    OperationKind,
    Outcome,
    OutcomeStatus,
    Request,
    validate_concurrency_limit,
)
from application.ports.entity_store import EntityStore
from core.logging_config import get_logger
from core.metrics import ServiceMetrics
from shared.codes import BusinessCode


E = TypeVar("E")

logger = get_logger(__name__)


def _kind_name(kind: int) -> str:
    return getattr(kind, "name", str(kind))


class BulkCoordinator(Generic[E]):
    """Submits every entity of a batch and collects exactly one outcome per entity.

    Each batch gets a fresh processor which is stopped before ``run_batch``
    returns. With ``timeout`` set, items without an outcome at the deadline
    are reported as TIMED_OUT and their pending work is abandoned.
    """

    def __init__(
        self,
        store: EntityStore[E],
        concurrency_limit: int,
        *,
        timeout: Optional[float] = None,
        metrics: Optional[ServiceMetrics] = None,
    ) -> None:
        if store is None:
            raise BulkConfigurationError("a store is required")
        if timeout is not None and timeout <= 0:
            raise BulkConfigurationError(f"timeout must be positive, got {timeout}")
        self.store = store
        self.concurrency_limit = validate_concurrency_limit(concurrency_limit)
        self.timeout = timeout
        self._metrics = metrics

    async def run_batch(self, entities: Iterable[E], kind: OperationKind) -> BatchResult[E]:
        started = time.perf_counter()
        result: BatchResult[E] = BatchResult.start(kind)
        bulk = build_bulk_request(entities, kind, self.store)
        if not bulk.requests:
            return result

        log = logger.bind(kind=_kind_name(kind), batch_size=len(bulk))
        log.info("bulk_batch_started", concurrency_limit=self.concurrency_limit)

        completed: asyncio.Queue[Request[E]] = asyncio.Queue()
        arrived: set[int] = set()
        async with BulkProcessor(self.concurrency_limit, metrics=self._metrics) as processor:
            submitters = [
                asyncio.create_task(self._submit_and_forward(processor, request, completed))
                for request in bulk.requests
            ]
            try:
                await self._collect(result, completed, arrived, len(bulk))
            except asyncio.TimeoutError:
                self._time_out_pending(result, bulk.requests, arrived)
                log.warning("bulk_batch_timed_out", timeout=self.timeout, arrived=len(arrived))
            finally:
                for task in submitters:
                    if not task.done():
                        task.cancel()
                await asyncio.gather(*submitters, return_exceptions=True)

        for outcome in result.failed:
            log.error(
                "bulk_item_failed",
                status=outcome.status.name,
                error_reason=int(outcome.error_reason),
                error=outcome.error_message,
            )
        log.info(
            "bulk_batch_finished",
            overall_status=result.overall_status.name,
            failed=len(result.failed),
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        self._observe(kind, result, time.perf_counter() - started)
        return result

    @staticmethod
    async def _submit_and_forward(
        processor: BulkProcessor[E], request: Request[E], completed: asyncio.Queue
    ) -> None:
        await processor.submit(request)
        await request.result
        completed.put_nowait(request)

    async def _collect(
        self,
        result: BatchResult[E],
        completed: asyncio.Queue,
        arrived: set[int],
        expected: int,
    ) -> None:
        loop = asyncio.get_running_loop()
        deadline = None if self.timeout is None else loop.time() + self.timeout
        while len(arrived) < expected:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            request = await asyncio.wait_for(completed.get(), remaining)
            if request.index in arrived:
                continue
            arrived.add(request.index)
            result.record(request.result.result())

    @staticmethod
    def _time_out_pending(result: BatchResult[E], requests: list[Request[E]], arrived: set[int]) -> None:
        for request in requests:
            if request.index in arrived:
                continue
            arrived.add(request.index)
            cell = request.result
            if cell.done() and not cell.cancelled():
                # Finished, but its submitter had not forwarded it yet
                result.record(cell.result())
                continue
            request.abandon()
            result.record(
                Outcome(
                    status=OutcomeStatus.TIMED_OUT,
                    entity=request.entity,
                    error_message="bulk request timed out before the item completed",
                    error_reason=BusinessCode.BULK_TIMEOUT,
                )
            )

    def _observe(self, kind: OperationKind, result: BatchResult[E], seconds: float) -> None:
        if self._metrics is None:
            return
        kind_label = _kind_name(kind)
        for outcome in result.outcomes:
            self._metrics.bulk_items.labels(kind=kind_label, status=outcome.status.name).inc()
        self._metrics.bulk_batch_duration.labels(
            kind=kind_label, overall_status=result.overall_status.name
        ).observe(seconds)


async def run_batch(
    entities: Iterable[E],
    kind: OperationKind,
    concurrency_limit: int,
    store: EntityStore[E],
    *,
    timeout: Optional[float] = None,
    metrics: Optional[ServiceMetrics] = None,
) -> BatchResult[E]:
    """One-shot helper around ``BulkCoordinator.run_batch``."""
    coordinator = BulkCoordinator(store, concurrency_limit, timeout=timeout, metrics=metrics)
    return await coordinator.run_batch(entities, kind)


__all__ = ["BulkCoordinator", "run_batch"]
