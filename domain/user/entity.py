"""
User domain entity - holds the core business rules for an account user
"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional
import re

from domain.common.exceptions import DomainValidationException


class Role(IntEnum):
    """What a user is allowed to do on its account"""

    PRIMARY = 0        # anything on the account
    UNRESTRICTED = 1   # anything except billing
    RESTRICTED = 2     # nothing service or billing related


@dataclass
class User:
    """User entity - an authorized individual on an account.

    ``id`` is 0 until the store assigns one on creation.
    """

    account_id: int = 0
    id: int = 0
    name: str = ""
    email: str = ""
    role: int = Role.PRIMARY
    password: Optional[str] = None
    href: Optional[str] = None

    def validate(self) -> None:
        """Business rule: a user must be fully populated before it is persisted.

        All violations are reported together in one message.
        """
        problems = []
        if self.account_id == 0:
            problems.append("AccountID cannot be 0")
        if not self.email:
            problems.append("Email address must be populated")
        elif not re.match(r'^[^@\s]+@[^@\s]+$', self.email):
            problems.append(f"Invalid email address {self.email}")
        if not self.name:
            problems.append("Name must be populated")
        if not self.password:
            problems.append("Password must be populated")
        if self.role not in {r.value for r in Role}:
            problems.append(
                f"Invalid Role. Role must be one of {Role.PRIMARY.value}, "
                f"{Role.UNRESTRICTED.value}, or {Role.RESTRICTED.value}, got {self.role}"
            )
        if problems:
            raise DomainValidationException("; ".join(problems), details={"problems": problems})

    def resource_path(self, collection: str = "users") -> str:
        return f"/{collection}/{self.id}"
