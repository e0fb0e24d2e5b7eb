"""Database package for storehook."""

from storehook.database.connection import DatabaseManager, get_db_manager
from storehook.database.models import Base, Customer

__all__ = ["DatabaseManager", "get_db_manager", "Base", "Customer"]
