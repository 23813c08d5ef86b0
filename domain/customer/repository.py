"""Customer repository contract."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import Customer


class CustomerRepository(ABC):
    @abstractmethod
    async def get_by_id(self, customer_id: int) -> Optional[Customer]:
        ...

    @abstractmethod
    async def get_all(self) -> List[Customer]:
        ...
