"""
Session store backends.
"""

from websessions.stores.memory import MemoryStore
from websessions.stores.sql import SQLStore

__all__ = ["MemoryStore", "SQLStore"]
