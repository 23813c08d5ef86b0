"""
User repository interface - the data access contract, not its implementation
"""
from abc import ABC, abstractmethod
from typing import Optional, List
from .entity import User


class UserRepository(ABC):
    """Abstract user repository - defines what can be done, not how"""

    @abstractmethod
    async def create(self, user: User) -> User:
        """Insert a user and return it with its assigned id.

        Raises UserAlreadyExistsException on a duplicate email.
        """
        pass

    @abstractmethod
    async def get_by_id(self, user_id: int) -> Optional[User]:
        """Return the user or None when it does not exist"""
        pass

    @abstractmethod
    async def get_all(self) -> List[User]:
        pass

    @abstractmethod
    async def update(self, user: User) -> User:
        """Update an existing user.

        Raises UserNotFoundException when no row has ``user.id``.
        """
        pass

    @abstractmethod
    async def delete(self, user_id: int) -> bool:
        """Delete a user, returning False when it did not exist"""
        pass
