"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .slot_service import SlotService, SlotStoreProtocol

__all__ = ["SlotService", "SlotStoreProtocol"]
