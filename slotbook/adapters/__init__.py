"""
Adapters layer - Slot persistence backends.
"""

from .json_store import JsonFileSlotStore
from .memory_store import InMemorySlotStore

__all__ = ["InMemorySlotStore", "JsonFileSlotStore"]
