"""
Application services for publishing availability slots.

The service coordinates the slot store adapter and the pure domain
functions: it expands recurrences, validates the whole batch against the
owner's stored slots, and only then writes. Holding no state besides one
lock per owner keeps every call self-contained; the store is injected via a
simple protocol so tests can use the in-memory implementation.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from dataclasses import replace
from datetime import date, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from ..domain.exceptions import (
    ConflictDetected,
    InvalidSlotShape,
    MissingRecurrenceBound,
    SlotNotFound,
    SlotPermissionError,
)
from ..domain.models import BookingRequest, ProjectedSlot, RecurrenceRule, Slot
from ..domain.overlap import validate_batch
from ..domain.recurrence import DEFAULT_MAX_OCCURRENCES, expand
from ..domain.timezones import localize_input, project, resolve_zone, slot_time_range

logger = logging.getLogger(__name__)


class SlotStoreProtocol(Protocol):
    """Protocol describing the slot store behaviour needed by the service."""

    async def get_all(self) -> List[Slot]:
        """Return every stored slot."""

    async def get_by_owner(self, owner_id: str) -> List[Slot]:
        """Return the slots of one owner."""

    async def get_by_id(self, slot_id: int) -> Optional[Slot]:
        """Return a slot or None."""

    async def insert(self, draft: Slot) -> int:
        """Store a draft and return its new id."""

    async def bulk_insert(self, drafts: Sequence[Slot]) -> List[int]:
        """Store all drafts atomically and return their ids in order."""

    async def update(self, slot_id: int, patch: Dict[str, Any]) -> None:
        """Change fields of a stored slot, keeping its id."""

    async def delete(self, slot_id: int) -> None:
        """Remove a slot."""

    async def delete_where(self, predicate: Callable[[Slot], bool]) -> int:
        """Remove matching slots and return how many were removed."""


def _edited_bounds(
    shown: ProjectedSlot,
    new_date: Optional[date],
    new_start: Optional[time],
    new_end: Optional[time],
) -> Tuple[date, time, date, time]:
    """
    Place edited wall-clock values on the dates they refer to in the
    display zone.

    For a slot that runs past midnight in the display zone, a new start
    earlier than the shown end belongs to the second date, and an end not
    after the start rolls over to the next day.
    """
    start_day = new_date or shown.start_date
    start = new_start or shown.start_time
    if (
        shown.spans_dates
        and new_date is None
        and new_start is not None
        and new_start < shown.end_time
    ):
        start_day = shown.end_date

    end = new_end or shown.end_time
    end_day = start_day
    if shown.spans_dates and end <= start:
        end_day = start_day + timedelta(days=1)

    return start_day, start, end_day, end


class SlotService:
    """
    Creates, edits and lists availability slots.

    Writes for one owner are serialized by a per-owner lock, and every write
    re-validates against a fresh read taken under that lock. Different
    owners never wait on each other.
    """

    def __init__(
        self,
        store: SlotStoreProtocol,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    ) -> None:
        self._store = store
        self._max_occurrences = max_occurrences
        # a lock lives only while some call holds a reference to it
        self._owner_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, owner_id: str) -> asyncio.Lock:
        lock = self._owner_locks.get(owner_id)
        if lock is None:
            lock = asyncio.Lock()
            self._owner_locks[owner_id] = lock
        return lock

    async def add_slot(
        self,
        draft: Slot,
        rule: Optional[RecurrenceRule] = None,
    ) -> List[Slot]:
        """
        Create a slot, or every occurrence of a recurring slot.

        Args:
            draft: First (or only) occurrence
            rule: Optional repeat rule

        Returns:
            The stored slots, with ids, in date order

        Raises:
            ConflictDetected: If any occurrence overlaps; nothing is written
            MissingRecurrenceBound: If the repeat ends before it starts
            ZoneResolutionError: If the draft's zone is unknown
        """
        resolve_zone(draft.timezone)
        candidates = expand(draft, rule, self._max_occurrences).to_list()
        if not candidates:
            raise MissingRecurrenceBound(
                f"Repeat until {rule.until} ends before the first occurrence on {draft.date}"
            )

        logger.debug(
            "Validating %d candidate(s) for owner %s", len(candidates), draft.owner_id
        )
        await self._validate(candidates, draft.owner_id)

        async with self._lock_for(draft.owner_id):
            await self._validate(candidates, draft.owner_id)
            ids = await self._store.bulk_insert(candidates)

        logger.debug("Stored %d slot(s) for owner %s", len(ids), draft.owner_id)
        return [candidate.with_id(slot_id) for candidate, slot_id in zip(candidates, ids)]

    async def edit_slot(
        self,
        actor_id: str,
        slot_id: int,
        *,
        date: Optional[date] = None,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        timezone: Optional[str] = None,
        input_zone: Optional[str] = None,
    ) -> Slot:
        """
        Change the date or times of one of the actor's slots.

        When ``input_zone`` is given, the new values are read as wall-clock
        values in that zone (typically the display zone) and converted into
        the slot's stored zone. Omitted values keep their current meaning.

        Raises:
            SlotNotFound: If the slot does not exist
            SlotPermissionError: If the actor does not own the slot, or the
                slot is synthetic
            InvalidSlotShape: If the edited slot would not start before it ends
            ConflictDetected: If the edited slot overlaps another slot
        """
        current = await self._owned_slot(actor_id, slot_id)
        if not current.is_real:
            raise SlotPermissionError(f"Synthetic slot {slot_id} cannot be edited")

        target_zone = timezone or current.timezone
        resolve_zone(target_zone)

        if input_zone is not None:
            shown = project(current, input_zone)
            start_day, start, end_day, end = _edited_bounds(shown, date, start_time, end_time)
            day, start, end = localize_input(
                start_day, start, end, input_zone, target_zone, end_day=end_day
            )
        else:
            day = date or current.date
            start = start_time or current.start_time
            end = end_time or current.end_time

        patch: Dict[str, Any] = {
            "date": day,
            "start_time": start,
            "end_time": end,
            "timezone": target_zone,
        }
        edited = replace(current, **patch)

        async with self._lock_for(actor_id):
            await self._validate([edited], actor_id, exclude_id=slot_id)
            await self._store.update(slot_id, patch)

        logger.debug("Edited slot %d for owner %s", slot_id, actor_id)
        return edited

    async def delete_slot(self, actor_id: str, slot_id: int) -> None:
        """
        Delete one of the actor's slots.

        Raises:
            SlotNotFound: If the slot does not exist
            SlotPermissionError: If the actor does not own the slot
        """
        await self._owned_slot(actor_id, slot_id)

        async with self._lock_for(actor_id):
            await self._store.delete(slot_id)

        logger.debug("Deleted slot %d for owner %s", slot_id, actor_id)

    async def clear_slots(self, owner_id: str) -> int:
        """Delete all real slots of ``owner_id``; synthetic slots stay."""
        async with self._lock_for(owner_id):
            removed = await self._store.delete_where(
                lambda slot: slot.owner_id == owner_id and slot.is_real
            )

        logger.debug("Cleared %d slot(s) for owner %s", removed, owner_id)
        return removed

    async def copy_day(
        self,
        owner_id: str,
        source_date: date,
        target_date: date,
    ) -> List[Slot]:
        """
        Copy the owner's slots on ``source_date`` to ``target_date``.

        The copies keep their times and zones. Either every copy is stored
        or none is.

        Raises:
            InvalidSlotShape: If source and target are the same day
            ConflictDetected: If any copy overlaps an existing slot
        """
        if source_date == target_date:
            raise InvalidSlotShape(f"Cannot copy {source_date} onto itself")

        owned = await self._store.get_by_owner(owner_id)
        candidates = [
            replace(slot.as_draft(), date=target_date)
            for slot in sorted(owned, key=lambda s: (s.start_time, s.id or 0))
            if slot.is_real and slot.date == source_date
        ]
        if not candidates:
            return []

        async with self._lock_for(owner_id):
            await self._validate(candidates, owner_id)
            ids = await self._store.bulk_insert(candidates)

        logger.debug(
            "Copied %d slot(s) from %s to %s for owner %s",
            len(ids), source_date, target_date, owner_id,
        )
        return [candidate.with_id(slot_id) for candidate, slot_id in zip(candidates, ids)]

    async def list_for_display(
        self,
        viewer_zone: str,
        owner_id: Optional[str] = None,
    ) -> List[ProjectedSlot]:
        """
        Project stored slots into the viewer's zone, ordered by start.

        Args:
            viewer_zone: IANA zone the viewer is displaying
            owner_id: Only list this owner's slots when given
        """
        resolve_zone(viewer_zone)
        if owner_id is None:
            slots = await self._store.get_all()
        else:
            slots = await self._store.get_by_owner(owner_id)

        ordered = sorted(slots, key=lambda slot: (slot_time_range(slot).start, slot.id or 0))
        return [project(slot, viewer_zone) for slot in ordered]

    async def request_booking(
        self,
        requester_id: str,
        requester_name: str,
        slot_id: int,
    ) -> BookingRequest:
        """
        Express interest in booking another user's slot.

        Nothing is stored and the slot is left untouched.

        Raises:
            SlotNotFound: If the slot does not exist
            SlotPermissionError: If the requester owns the slot
        """
        slot = await self._store.get_by_id(slot_id)
        if slot is None:
            raise SlotNotFound(slot_id)
        if slot.owner_id == requester_id:
            raise SlotPermissionError("You cannot book your own slot")

        logger.info("Booking request from %s for slot %d", requester_id, slot_id)
        return BookingRequest(slot=slot, requester_id=requester_id, requester_name=requester_name)

    async def _owned_slot(self, actor_id: str, slot_id: int) -> Slot:
        slot = await self._store.get_by_id(slot_id)
        if slot is None:
            raise SlotNotFound(slot_id)
        if slot.owner_id != actor_id:
            raise SlotPermissionError(f"Slot {slot_id} belongs to another user")
        return slot

    async def _validate(
        self,
        candidates: Sequence[Slot],
        owner_id: str,
        exclude_id: Optional[int] = None,
    ) -> None:
        existing = await self._store.get_by_owner(owner_id)
        try:
            validate_batch(candidates, existing, exclude_id=exclude_id)
        except ConflictDetected as exc:
            logger.warning("Rejected slot change for owner %s: %s", owner_id, exc)
            raise
