"""
Declarative base for ORM models (SQLAlchemy 2.0 style)
"""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


# Metadata used by migrations and create_tables()
metadata = Base.metadata
