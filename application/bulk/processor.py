"""Bounded worker pool executing bulk requests against an entity store."""
from __future__ import annotations

import asyncio
import copy
from dataclasses import is_dataclass, replace
from typing import Any, Generic, Optional, TypeVar

from application.bulk.types import (
    OperationKind,
    Outcome,
    OutcomeStatus,
    Request,
    validate_concurrency_limit,
)
from core.logging_config import get_logger
from core.metrics import ServiceMetrics
from domain.common.exceptions import BusinessException, UnsupportedOperationException
from shared.codes import BusinessCode


E = TypeVar("E")

logger = get_logger(__name__)


def _with_identifier(entity: Any, new_id: int) -> Any:
    if is_dataclass(entity) and not isinstance(entity, type):
        return replace(entity, id=new_id)
    clone = copy.copy(entity)
    clone.id = new_id
    return clone


async def perform_operation(request: Request[E]) -> Outcome[E]:
    """Run a single item against its store and translate the result.

    Store failures never escape: business errors become BAD_REQUEST with the
    exception's code as reason, anything else becomes SERVER_ERROR.
    """
    entity = request.entity
    try:
        if request.kind == OperationKind.CREATE:
            new_id = await request.store.create(entity)
            return Outcome(status=OutcomeStatus.CREATED, entity=_with_identifier(entity, new_id))
        if request.kind == OperationKind.UPDATE:
            await request.store.update(entity)
            return Outcome(status=OutcomeStatus.OK, entity=entity)
    except BusinessException as exc:
        return Outcome(
            status=OutcomeStatus.BAD_REQUEST,
            entity=entity,
            error_message=exc.message,
            error_reason=exc.code,
        )
    except Exception as exc:
        logger.error(
            "bulk_operation_failed",
            item=request.index,
            kind=getattr(request.kind, "name", str(request.kind)),
            error=str(exc),
            exc_info=True,
        )
        return Outcome(
            status=OutcomeStatus.SERVER_ERROR,
            entity=entity,
            error_message="unexpected error occurred",
            error_reason=BusinessCode.SYSTEM_ERROR,
        )

    unsupported = UnsupportedOperationException(getattr(request.kind, "name", str(request.kind)))
    return Outcome(
        status=OutcomeStatus.BAD_REQUEST,
        entity=entity,
        error_message=unsupported.message,
        error_reason=unsupported.code,
    )


class BulkProcessor(Generic[E]):
    """Accepts requests through ``submit`` and runs at most ``concurrency_limit`` at once.

    A dispatch task pulls requests off a bounded queue, waits for a free slot
    and hands each request to its own worker task. A worker releases its slot
    and then publishes the outcome into the request's result cell.

    Usage::

        async with BulkProcessor(10) as processor:
            await processor.submit(request)
            outcome = await request.result
    """

    def __init__(self, concurrency_limit: int, *, metrics: Optional[ServiceMetrics] = None) -> None:
        self.concurrency_limit = validate_concurrency_limit(concurrency_limit)
        self._metrics = metrics
        self._requests: asyncio.Queue[Request[E]] = asyncio.Queue(maxsize=concurrency_limit)
        self._slots = asyncio.Semaphore(concurrency_limit)
        self._stop = asyncio.Event()
        self._dispatcher: Optional[asyncio.Task] = None
        self._workers: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._dispatcher is not None and not self._stop.is_set()

    @property
    def active_workers(self) -> int:
        return len(self._workers)

    def start(self) -> None:
        if self._dispatcher is not None:
            raise RuntimeError("BulkProcessor already started")
        if self._stop.is_set():
            raise RuntimeError("BulkProcessor cannot be restarted after stop")
        self._dispatcher = asyncio.create_task(self._dispatch_loop(), name="bulk-dispatcher")

    async def submit(self, request: Request[E]) -> None:
        """Enqueue a request; waits while the inbound queue is full."""
        if self._stop.is_set():
            raise RuntimeError("BulkProcessor is stopped")
        await self._requests.put(request)

    async def stop(self) -> None:
        """Stop dispatching. Requests that were never dispatched are abandoned.

        Workers already running finish on their own and still publish.
        """
        self._stop.set()
        task, self._dispatcher = self._dispatcher, None
        if task is None or task.done():
            return
        # A dispatcher waiting for a free slot never sees the stop signal
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def __aenter__(self) -> "BulkProcessor[E]":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _dispatch_loop(self) -> None:
        stop_wait = asyncio.ensure_future(self._stop.wait())
        next_request: Optional[asyncio.Future] = None
        try:
            while True:
                next_request = asyncio.ensure_future(self._requests.get())
                await asyncio.wait({stop_wait, next_request}, return_when=asyncio.FIRST_COMPLETED)
                if stop_wait.done():
                    break
                request = next_request.result()
                next_request = None
                try:
                    await self._slots.acquire()
                except asyncio.CancelledError:
                    request.abandon()
                    raise
                self._spawn(request)
        finally:
            stop_wait.cancel()
            if next_request is not None:
                if next_request.done() and not next_request.cancelled():
                    next_request.result().abandon()
                else:
                    next_request.cancel()
            self._abandon_queued()

    def _abandon_queued(self) -> None:
        while True:
            try:
                request = self._requests.get_nowait()
            except asyncio.QueueEmpty:
                return
            request.abandon()

    def _spawn(self, request: Request[E]) -> None:
        task = asyncio.create_task(self._work(request), name=f"bulk-worker-{request.index}")
        self._workers.add(task)
        task.add_done_callback(self._workers.discard)

    async def _work(self, request: Request[E]) -> None:
        try:
            if request.abandoned:
                logger.debug("bulk_request_skipped", item=request.index)
                return
            operation = asyncio.ensure_future(perform_operation(request))
            # Abandoning the request also cancels its in-flight store call
            request.result.add_done_callback(lambda cell: operation.cancel() if cell.cancelled() else None)
            if self._metrics is not None:
                self._metrics.bulk_inflight.inc()
            try:
                outcome = await operation
            except asyncio.CancelledError:
                if not request.abandoned:
                    raise
                logger.debug("bulk_request_abandoned", item=request.index)
                return
            finally:
                if self._metrics is not None:
                    self._metrics.bulk_inflight.dec()
        finally:
            self._slots.release()
        request.resolve(outcome)


__all__ = ["BulkProcessor", "perform_operation"]
