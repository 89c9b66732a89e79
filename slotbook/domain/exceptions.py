"""
Domain-specific exception hierarchy for the slot scheduling engine.

Every error carries a machine-readable ``kind`` so callers can report a
rejection without parsing messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from .models import Slot


class SlotBookError(Exception):
    """Base class for all application-level errors."""

    kind = "slotbook_error"


class InvalidSlotShape(SlotBookError):
    """Raised when a slot does not start strictly before it ends."""

    kind = "invalid_slot_shape"


class MissingRecurrenceBound(SlotBookError):
    """Raised when a repeating rule has no ``until`` date."""

    kind = "missing_recurrence_bound"


class RecurrenceLimitExceeded(SlotBookError):
    """Raised when an expansion would produce more occurrences than allowed."""

    kind = "recurrence_limit_exceeded"


class ZoneResolutionError(SlotBookError):
    """Raised when a timezone identifier cannot be resolved."""

    kind = "zone_resolution_error"

    def __init__(self, zone: str):
        super().__init__(f"Unknown timezone identifier: {zone!r}")
        self.zone = zone


class StoreUnavailableError(SlotBookError):
    """Raised when the persistence layer fails."""

    kind = "store_unavailable"


class SlotNotFound(SlotBookError):
    """Raised when a slot id does not exist in the store."""

    kind = "slot_not_found"

    def __init__(self, slot_id: int):
        super().__init__(f"Slot {slot_id} does not exist")
        self.slot_id = slot_id


class SlotPermissionError(SlotBookError):
    """Raised when a user acts on a slot they do not own (or must not own)."""

    kind = "slot_permission_denied"


class ConflictDetected(SlotBookError):
    """
    Raised when one or more candidates overlap the owner's slots.

    ``conflicts`` lists the stored slots that collide with a candidate;
    ``batch_conflicts`` lists pairs of candidates colliding with each other.
    """

    kind = "conflict_detected"

    def __init__(
        self,
        conflicts: Sequence["Slot"] = (),
        batch_conflicts: Sequence[Tuple["Slot", "Slot"]] = (),
    ):
        self.conflicts: List["Slot"] = list(conflicts)
        self.batch_conflicts: List[Tuple["Slot", "Slot"]] = list(batch_conflicts)
        parts = []
        if self.conflicts:
            parts.append(f"{len(self.conflicts)} existing slot(s)")
        if self.batch_conflicts:
            parts.append(f"{len(self.batch_conflicts)} pair(s) within the request")
        super().__init__("Slot overlaps " + " and ".join(parts or ["another slot"]))
