"""Database layer - engine, base classes, types, and immutability."""

from cashflow_kernel.db.base import UUID, Base, TimestampedBase, UUIDString
from cashflow_kernel.db.engine import create_tables, get_engine, get_session, session_scope
from cashflow_kernel.db.types import LongText, Money, Sequence, ShortCode

__all__ = [
    "get_engine",
    "get_session",
    "session_scope",
    "create_tables",
    "Base",
    "TimestampedBase",
    "UUIDString",
    "UUID",
    "Money",
    "Sequence",
    "ShortCode",
    "LongText",
]
