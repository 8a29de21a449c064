"""
Declarative base - every ORM model inherits from Base.

Alembic and the test suite use Base.metadata to discover the tables.
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base class."""
    pass
