from __future__ import annotations

import asyncio
import copy
from typing import Iterable, Optional, TypeVar

from application.bulk.types import BulkRequest, OperationKind, Request
from application.ports.entity_store import EntityStore


E = TypeVar("E")


def build_bulk_request(
    entities: Iterable[E],
    kind: OperationKind,
    store: EntityStore[E],
    *,
    loop: Optional[asyncio.AbstractEventLoop] = None,
) -> BulkRequest[E]:
    """Wrap each entity in a request bound to ``store`` with an empty result cell.

    Every request holds its own shallow copy of the entity, so workers never
    share an instance with the caller or with each other.
    """
    loop = loop or asyncio.get_running_loop()
    requests = [
        Request(index=i, entity=copy.copy(entity), kind=kind, store=store, result=loop.create_future())
        for i, entity in enumerate(entities)
    ]
    return BulkRequest(kind=kind, requests=requests)


__all__ = ["build_bulk_request"]
