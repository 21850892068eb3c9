"""
Persistence layer for Cutshop state.

SQLite-backed storage for users, colour catalog, jobs, cutlists,
materials, recut entries and time logs.
"""

from .manager import PersistenceManager
from .errors import PersistenceError, SchemaError

__all__ = ["PersistenceManager", "PersistenceError", "SchemaError"]
