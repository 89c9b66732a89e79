"""
Recurrence expansion for availability slots.

Turns a base slot plus a repeat rule into the concrete dated slots to store.
Month and year steps clamp to the last valid day of the target month
(Jan 31 + 1 month -> Feb 28/29), and every occurrence is computed from the
anchor date so month-end anchors never drift (Jan 31 -> Feb 28 -> Mar 31).
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Dict, Iterator, List

import pendulum

from .exceptions import RecurrenceLimitExceeded
from .models import Frequency, RecurrenceRule, Slot

DEFAULT_MAX_OCCURRENCES = 1000

# pendulum ``add()`` keyword and step size per frequency
_STEPS: Dict[Frequency, Dict[str, int]] = {
    Frequency.DAILY: {"days": 1},
    Frequency.WEEKLY: {"weeks": 1},
    Frequency.MONTHLY: {"months": 1},
    Frequency.YEARLY: {"years": 1},
}


def occurrence_date(anchor: date, frequency: Frequency, index: int) -> date:
    """Return the ``index``-th occurrence date counted from ``anchor``."""
    if frequency == Frequency.NONE or index == 0:
        return anchor

    step = {unit: amount * index for unit, amount in _STEPS[frequency].items()}
    shifted = pendulum.date(anchor.year, anchor.month, anchor.day).add(**step)
    return date(shifted.year, shifted.month, shifted.day)


class RecurrenceExpansion:
    """
    Lazy, restartable sequence of occurrences for one base slot.

    Iterating twice yields the same slots in the same strictly increasing
    date order.
    """

    def __init__(
        self,
        base: Slot,
        rule: RecurrenceRule,
        max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
    ):
        self.base = base.as_draft()
        self.rule = rule
        self.max_occurrences = max_occurrences

    def __iter__(self) -> Iterator[Slot]:
        if not self.rule.repeats:
            yield self.base
            return

        until = self.rule.until
        index = 0
        while True:
            current = occurrence_date(self.base.date, self.rule.frequency, index)
            if current > until:
                return
            if index >= self.max_occurrences:
                raise RecurrenceLimitExceeded(
                    f"{self.rule.frequency.value} repeat from {self.base.date} until "
                    f"{until} exceeds {self.max_occurrences} occurrences"
                )
            yield replace(self.base, date=current)
            index += 1

    def to_list(self) -> List[Slot]:
        return list(self)


def expand(
    base: Slot,
    rule: RecurrenceRule | None = None,
    max_occurrences: int = DEFAULT_MAX_OCCURRENCES,
) -> RecurrenceExpansion:
    """
    Expand ``base`` according to ``rule``.

    Args:
        base: Slot draft holding the first occurrence
        rule: Repeat rule; ``None`` behaves like ``Frequency.NONE``
        max_occurrences: Upper bound on generated occurrences

    Returns:
        Iterable of slot drafts, starting with ``base`` itself
    """
    return RecurrenceExpansion(base, rule or RecurrenceRule(), max_occurrences)
