"""Customer domain entity (read-only in this service)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class Customer:
    id: int
    name: str
    street_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
