"""
Scan store exports.
"""

from avatarprobe.store.base import ScanStore
from avatarprobe.store.memory import MemoryScanStore
from avatarprobe.store.sqlalchemy_store import SQLAlchemyScanStore, create_store_engine

__all__ = ["MemoryScanStore", "SQLAlchemyScanStore", "ScanStore", "create_store_engine"]
