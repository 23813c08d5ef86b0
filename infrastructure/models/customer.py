"""
Customer database model
"""
from sqlalchemy import Column, Integer, String

from .base import Base


class CustomerModel(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    street_address = Column(String(255), nullable=True)
    city = Column(String(255), nullable=True)
    state = Column(String(2), nullable=True)
    country = Column(String(50), nullable=True)

    def __repr__(self):
        return f"<CustomerModel(id={self.id}, name='{self.name}')>"
