from __future__ import annotations
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from .models import Event


def sort_by_end(events: Iterable[Event]) -> List[Event]:
    return sorted(events, key=lambda e: e.end)


def select_current(events: Sequence[Event], now: datetime) -> Optional[Event]:
    """Return the earliest-ending event that has not ended yet, or None.

    ``events`` must already be ordered by ``end`` (see ``sort_by_end``); the
    result is undefined otherwise. Started and upcoming events are treated
    alike, so the caller decides which of the two it is looking at.
    """
    low, high = 0, len(events) - 1
    found = -1
    while low <= high:
        mid = low + (high - low) // 2
        if now < events[mid].end:
            found = mid
            high = mid - 1
        else:
            low = mid + 1

    if found == -1:
        return None
    return events[found]
