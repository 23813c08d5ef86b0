"""
User database model - SQLAlchemy ORM mapping
Infrastructure detail only; business rules live in domain.user.entity.User
"""
from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime, timezone

from .base import Base


class UserModel(Base):
    """users table: an authorized individual on an account"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    account_id = Column(Integer, index=True, nullable=False, comment="owning account")
    name = Column(String(255), nullable=False)
    # Duplicate inserts are rejected here, not by a pre-check
    email = Column(String(255), unique=True, nullable=False)
    role = Column(Integer, nullable=False, default=0, comment="0 primary, 1 unrestricted, 2 restricted")
    password = Column(String(255), nullable=False, comment="pbkdf2 hash")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    def __repr__(self):
        return f"<UserModel(id={self.id}, account_id={self.account_id}, email='{self.email}')>"
