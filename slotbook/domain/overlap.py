"""
Overlap validation for a single owner's availability.

Slots are compared as absolute half-open intervals, so two slots that only
touch (one ends exactly when the other starts) never conflict. Synthetic
slots and other owners' slots are ignored.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .exceptions import ConflictDetected
from .models import Slot, TimeRange
from .timezones import slot_time_range


def _comparable(a: Slot, b: Slot) -> bool:
    return a.is_real and b.is_real and a.owner_id == b.owner_id


def slots_conflict(a: Slot, b: Slot) -> bool:
    """Check whether two slots of the same owner overlap in absolute time."""
    if not _comparable(a, b):
        return False
    return slot_time_range(a).overlaps(slot_time_range(b))


def find_conflicts(
    candidates: Iterable[Slot],
    existing: Iterable[Slot],
    exclude_id: Optional[int] = None,
) -> List[Slot]:
    """
    Return the stored slots that conflict with any candidate.

    Args:
        candidates: Slots about to be written
        existing: Slots already stored (any owners, any origin)
        exclude_id: Stored slot to skip, used when editing it in place

    Returns:
        Conflicting slots from ``existing``, in their original order
    """
    candidate_ranges: List[Tuple[Slot, TimeRange]] = [
        (candidate, slot_time_range(candidate))
        for candidate in candidates
        if candidate.is_real
    ]
    if not candidate_ranges:
        return []

    conflicts: List[Slot] = []
    for stored in existing:
        if exclude_id is not None and stored.id == exclude_id:
            continue
        if not stored.is_real:
            continue

        stored_range = slot_time_range(stored)
        for candidate, candidate_range in candidate_ranges:
            if _comparable(candidate, stored) and candidate_range.overlaps(stored_range):
                conflicts.append(stored)
                break

    return conflicts


def find_batch_conflicts(candidates: Sequence[Slot]) -> List[Tuple[Slot, Slot]]:
    """
    Return every pair of candidates that overlap each other.

    Candidates are grouped per owner and swept in start order, so only
    neighbours whose ranges are still open get compared.
    """
    by_owner: Dict[str, List[Tuple[TimeRange, int, Slot]]] = {}
    for position, candidate in enumerate(candidates):
        if candidate.is_real:
            by_owner.setdefault(candidate.owner_id, []).append(
                (slot_time_range(candidate), position, candidate)
            )

    pairs: List[Tuple[int, int, Slot, Slot]] = []
    for entries in by_owner.values():
        entries.sort(key=lambda entry: (entry[0].start, entry[1]))
        active: List[Tuple[TimeRange, int, Slot]] = []
        for time_range, position, candidate in entries:
            active = [entry for entry in active if entry[0].end > time_range.start]
            for _, other_position, other in active:
                # report pairs in request order
                if other_position < position:
                    pairs.append((other_position, position, other, candidate))
                else:
                    pairs.append((position, other_position, candidate, other))
            active.append((time_range, position, candidate))

    pairs.sort(key=lambda pair: (pair[0], pair[1]))
    return [(first, second) for _, _, first, second in pairs]


def validate_batch(
    candidates: Sequence[Slot],
    existing: Iterable[Slot],
    exclude_id: Optional[int] = None,
) -> None:
    """
    Accept or reject a batch of candidates as a whole.

    Raises:
        ConflictDetected: If a candidate overlaps a stored slot or another
            candidate
    """
    batch_conflicts = find_batch_conflicts(candidates)
    conflicts = find_conflicts(candidates, existing, exclude_id=exclude_id)

    if conflicts or batch_conflicts:
        raise ConflictDetected(conflicts=conflicts, batch_conflicts=batch_conflicts)
