"""
In-process slot store.

Keeps slots in a dict keyed by id. Every mutation builds the new state first
and commits it in one step, so a failed bulk insert leaves nothing behind.
Subclasses persist the committed state by overriding ``_refresh`` and
``_commit``.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..domain.exceptions import SlotNotFound
from ..domain.models import Slot

logger = logging.getLogger(__name__)

# fields a patch may change; id and owner are fixed for a slot's lifetime
PATCHABLE_FIELDS = frozenset({"owner_name", "date", "start_time", "end_time", "timezone"})


class InMemorySlotStore:
    """
    Dict-backed implementation of the slot store contract.

    Ids are positive integers handed out in increasing order and never
    reused.
    """

    def __init__(self, slots: Iterable[Slot] = ()):
        self._slots: Dict[int, Slot] = {}
        self._next_id = 1
        for slot in slots:
            self._slots[self._next_id] = slot.with_id(self._next_id)
            self._next_id += 1

    def _refresh(self) -> None:
        """Reload state from the backing medium. No-op in memory."""

    def _commit(self, slots: Dict[int, Slot], next_id: int) -> None:
        self._slots = slots
        self._next_id = next_id

    async def get_all(self) -> List[Slot]:
        self._refresh()
        return list(self._slots.values())

    async def get_by_owner(self, owner_id: str) -> List[Slot]:
        self._refresh()
        return [slot for slot in self._slots.values() if slot.owner_id == owner_id]

    async def get_by_id(self, slot_id: int) -> Optional[Slot]:
        self._refresh()
        return self._slots.get(slot_id)

    async def insert(self, draft: Slot) -> int:
        ids = await self.bulk_insert([draft])
        return ids[0]

    async def bulk_insert(self, drafts: Iterable[Slot]) -> List[int]:
        """Insert all drafts or none of them."""
        self._refresh()
        slots = dict(self._slots)
        next_id = self._next_id
        ids: List[int] = []

        for draft in drafts:
            slots[next_id] = draft.with_id(next_id)
            ids.append(next_id)
            next_id += 1

        self._commit(slots, next_id)
        logger.debug("Inserted %d slot(s): %s", len(ids), ids)
        return ids

    async def update(self, slot_id: int, patch: Dict[str, Any]) -> None:
        """
        Apply ``patch`` to a stored slot in place.

        Raises:
            SlotNotFound: If the slot does not exist
            ValueError: If the patch touches an immutable field
        """
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot patch slot field(s): {', '.join(sorted(unknown))}")

        self._refresh()
        current = self._slots.get(slot_id)
        if current is None:
            raise SlotNotFound(slot_id)

        slots = dict(self._slots)
        slots[slot_id] = replace(current, **patch)
        self._commit(slots, self._next_id)
        logger.debug("Updated slot %d: %s", slot_id, sorted(patch))

    async def delete(self, slot_id: int) -> None:
        self._refresh()
        if slot_id not in self._slots:
            raise SlotNotFound(slot_id)

        slots = dict(self._slots)
        del slots[slot_id]
        self._commit(slots, self._next_id)
        logger.debug("Deleted slot %d", slot_id)

    async def delete_where(self, predicate: Callable[[Slot], bool]) -> int:
        """Delete every slot matching ``predicate`` and return how many went."""
        self._refresh()
        slots = {
            slot_id: slot
            for slot_id, slot in self._slots.items()
            if not predicate(slot)
        }
        removed = len(self._slots) - len(slots)
        if removed:
            self._commit(slots, self._next_id)
        logger.debug("Deleted %d slot(s) by predicate", removed)
        return removed
