# api/invoice_pro/services/reminder_ladder.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Optional, Tuple

from ..calculate_due_date import DateLike, day_difference
from ..errors import ConfigurationError

REMINDER_KINDS = ("upcoming", "due_today", "overdue")
REMINDER_TONES = ("friendly", "professional", "urgent")


@dataclass(frozen=True)
class ReminderEntry:
    day_offset: int          # <0 before due date, 0 on it, >0 days overdue
    kind: str
    subject: str
    tone: str = "professional"

    def __post_init__(self):
        if self.kind not in REMINDER_KINDS:
            raise ConfigurationError(f"Unknown reminder kind: {self.kind!r}")
        if self.tone not in REMINDER_TONES:
            raise ConfigurationError(f"Unknown reminder tone: {self.tone!r}")


class ReminderLadder:
    """
    Ordered set of reminder entries keyed by day offset from the due date.
    Offsets are unique; lookups are exact matches only.
    """

    def __init__(self, entries: Iterable[ReminderEntry]):
        by_offset = {}
        for e in entries:
            if e.day_offset in by_offset:
                raise ConfigurationError(f"Duplicate reminder offset: {e.day_offset}")
            by_offset[e.day_offset] = e
        self._entries: Tuple[ReminderEntry, ...] = tuple(
            by_offset[k] for k in sorted(by_offset)
        )
        self._by_offset = by_offset

    def __iter__(self) -> Iterator[ReminderEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def offsets(self) -> list[int]:
        return [e.day_offset for e in self._entries]

    def get(self, day_offset: int) -> Optional[ReminderEntry]:
        return self._by_offset.get(day_offset)


DEFAULT_REMINDER_LADDER = ReminderLadder([
    ReminderEntry(-3, "upcoming", "Invoice Due in 3 Days", "friendly"),
    ReminderEntry(0, "due_today", "Invoice Due Today", "friendly"),
    ReminderEntry(1, "overdue", "Invoice Overdue - Payment Required", "professional"),
    ReminderEntry(7, "overdue", "Invoice 7 Days Overdue - Urgent", "professional"),
    ReminderEntry(14, "overdue", "Invoice 14 Days Overdue - Final Notice", "urgent"),
    ReminderEntry(30, "overdue", "Invoice 30 Days Overdue - Collection Notice", "urgent"),
])


def find_due_reminder(
    due_date: DateLike,
    current_date: DateLike,
    ladder: ReminderLadder,
) -> Optional[ReminderEntry]:
    """
    The ladder entry that fires on `current_date`, if any.

    Stateless: a day that was skipped is not caught up later, and callers must
    check their own sent-log so each (invoice, offset) fires at most once.
    """
    return ladder.get(day_difference(current_date, due_date))
