"""SQLite-backed storage for runs, reports, constraints and preferences."""

from .database import MEMORY, RankerDB
from .gateway import PersistenceGateway, SqliteGateway

__all__ = ["RankerDB", "MEMORY", "PersistenceGateway", "SqliteGateway"]
