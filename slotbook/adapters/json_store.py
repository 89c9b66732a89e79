"""
JSON file slot store.

The whole slot set lives in a single JSON document. Writes go to a temporary
file that then replaces the original, so a crash mid-write never leaves a
half-written store.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict

from ..domain.exceptions import InvalidSlotShape, StoreUnavailableError
from ..domain.models import Slot
from .memory_store import InMemorySlotStore

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class JsonFileSlotStore(InMemorySlotStore):
    """
    Slot store persisted to a JSON file.

    Document format::

        {"schema_version": 1, "next_id": 4, "slots": [{...}, ...]}

    A missing file is an empty store; an unreadable one raises
    ``StoreUnavailableError``.
    """

    def __init__(self, path: Path):
        super().__init__()
        self.path = Path(path)

    def _refresh(self) -> None:
        if not self.path.exists():
            self._slots = {}
            self._next_id = 1
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                document = json.load(f)
            slots = [Slot.from_record(record) for record in document.get("slots", [])]
            next_id = int(document.get("next_id", 1))
        except (OSError, ValueError, KeyError, TypeError, AttributeError, InvalidSlotShape) as exc:
            raise StoreUnavailableError(f"Cannot read slot store {self.path}: {exc}") from exc

        self._slots = {slot.id: slot for slot in slots if slot.id is not None}
        self._next_id = max([next_id, *(slot_id + 1 for slot_id in self._slots)])

    def _commit(self, slots: Dict[int, Slot], next_id: int) -> None:
        document: Dict[str, Any] = {
            "schema_version": SCHEMA_VERSION,
            "next_id": next_id,
            "slots": [slots[slot_id].to_record() for slot_id in sorted(slots)],
        }
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StoreUnavailableError(f"Cannot write slot store {self.path}: {exc}") from exc

        logger.debug("Wrote %d slot(s) to %s", len(slots), self.path)
        super()._commit(slots, next_id)
