"""Shared SQLAlchemy declarative base for the marketplace ORM models."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all marketplace ORM models.

    Every model inherits from this class so that a single metadata registry
    holds the whole schema.
    """

    pass
