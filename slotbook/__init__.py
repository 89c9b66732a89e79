"""
slotbook - publish availability slots on a shared calendar.
"""

__version__ = "0.1.0"
