"""Infrastructure models package exports."""
from .base import Base, metadata
from .user import UserModel
from .customer import CustomerModel

__all__ = [
    "Base",
    "metadata",
    "UserModel",
    "CustomerModel",
]
