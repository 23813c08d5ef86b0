"""Backing-store port consumed by bulk processing.

A store performs one create or update for one entity. Failures are raised
as ``BusinessException`` subclasses whose ``code`` becomes the item's error
reason. Implementations are called concurrently from several workers and
must not share a single database session between calls.
"""
from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable


E_contra = TypeVar("E_contra", contravariant=True)


@runtime_checkable
class EntityStore(Protocol[E_contra]):
    async def create(self, entity: E_contra) -> int:
        """Persist a new entity and return its assigned identifier."""
        ...

    async def update(self, entity: E_contra) -> None: ...


__all__ = ["EntityStore"]
