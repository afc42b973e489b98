"""Utility modules."""

from affiliate_admin.utils.db import engine, get_db, read_savepoint

__all__ = [
    "get_db",
    "read_savepoint",
    "engine",
]
