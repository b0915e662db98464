"""
Database Package
Read access to the ledger tables the analytics engines consume.
"""

from app.database.base import Base, TimestampMixin, UUIDMixin
from app.database.connection import async_session_factory, close_db, create_ledger_tables

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "async_session_factory",
    "close_db",
    "create_ledger_tables",
]
