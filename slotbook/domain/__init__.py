"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .exceptions import (
    ConflictDetected,
    InvalidSlotShape,
    MissingRecurrenceBound,
    RecurrenceLimitExceeded,
    SlotBookError,
    SlotNotFound,
    SlotPermissionError,
    StoreUnavailableError,
    ZoneResolutionError,
)
from .models import (
    BookingRequest,
    Frequency,
    ProjectedSlot,
    RecurrenceRule,
    Slot,
    SlotOrigin,
    TimeRange,
    display_color,
)
from .overlap import find_batch_conflicts, find_conflicts, slots_conflict, validate_batch
from .recurrence import expand
from .timezones import localize_input, project, resolve_zone, slot_time_range

__all__ = [
    "BookingRequest",
    "ConflictDetected",
    "Frequency",
    "InvalidSlotShape",
    "MissingRecurrenceBound",
    "ProjectedSlot",
    "RecurrenceLimitExceeded",
    "RecurrenceRule",
    "Slot",
    "SlotBookError",
    "SlotNotFound",
    "SlotOrigin",
    "SlotPermissionError",
    "StoreUnavailableError",
    "TimeRange",
    "ZoneResolutionError",
    "display_color",
    "expand",
    "find_batch_conflicts",
    "find_conflicts",
    "localize_input",
    "project",
    "resolve_zone",
    "slot_time_range",
    "slots_conflict",
    "validate_batch",
]
