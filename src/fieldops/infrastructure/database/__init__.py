"""Database infrastructure layer."""

from .connection import get_database_engine, get_async_session_factory, get_async_session
from .models import Base, OrderDB, OrderGameDB, FieldMeasurementDB
from .repositories import (
    RepositoryException,
    SqlAlchemyFieldMeasurementRepository,
    SqlAlchemyOrderRepository,
)

__all__ = [
    "get_database_engine",
    "get_async_session_factory",
    "get_async_session",
    "Base",
    "OrderDB",
    "OrderGameDB",
    "FieldMeasurementDB",
    "RepositoryException",
    "SqlAlchemyOrderRepository",
    "SqlAlchemyFieldMeasurementRepository",
]
