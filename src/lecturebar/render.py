from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Union

from .models import Event

# Fill levels from empty to full in eighths of a cell.
BLOCKS = (" ", "▏", "▎", "▍", "▌", "▋", "▊", "▉", "█")
EMPTY_BLOCK = BLOCKS[0]
FULL_BLOCK = BLOCKS[-1]

MIN_WIDTH = 5
DEFAULT_LEAD_MINUTES = 30
END_TIME_FORMAT = "%H:%M"

# tmux style tokens, emitted as-is for the status line to interpret.
BAR_OPEN = "[#[bg=color238]"
BAR_CLOSE = "#[bg=default]]#[nobold]"
HIGHLIGHT = "#[bg=lightgrey,fg=color237]"
HIGHLIGHT_RESET = "#[bg=color238,fg=lightgrey]"
SUFFIX = "#[nobold,fg=colour242] |"

ABBREVIATIONS: Mapping[str, str] = MappingProxyType({
    "Algorithm and complexity": "ALGO",
    "Analysis": "ANA",
    "BWL": "BWL",
    "Digitaltechnik": "DIGI",
    "Intercultural Communication Group A": "ICC",
    "Intercultural Communication Group B": "ICC",
    "Lineare Algebra": "LA",
    "Programmieren": "PROG",
    "Projektmanagement": "PM",
    "TheoInfo1: Grundlagen und Logik": "THEO",
    "Web Engineering": "WEB",
})


class LabelLayout(Enum):
    IN_EMPTY = "in_empty"   # end time sits in the unfilled tail
    OVERLAY = "overlay"     # end time is drawn over the filled run


@dataclass(frozen=True)
class NoEvent:
    pass


@dataclass(frozen=True)
class Upcoming:
    event: Event
    minutes_until_start: int


@dataclass(frozen=True)
class InProgress:
    event: Event
    percent: float
    layout: LabelLayout


Outcome = Union[NoEvent, Upcoming, InProgress]


@dataclass(frozen=True)
class BarSegments:
    """One rendered bar, split where the markup goes.

    IN_EMPTY reads ``filled + gap + label``; OVERLAY reads ``filled + label + gap``.
    ``gap`` is the boundary glyph followed by empty cells, or empty when no
    cell is left for it.
    """
    layout: LabelLayout
    filled: str
    label: str
    gap: str

    @property
    def cells(self) -> int:
        return len(self.filled) + len(self.label) + len(self.gap)


def merge_abbreviations(extra: Mapping[str, str]) -> Mapping[str, str]:
    if not extra:
        return ABBREVIATIONS
    return MappingProxyType({**ABBREVIATIONS, **extra})


def abbreviate(title: str, table: Mapping[str, str] = ABBREVIATIONS) -> str:
    return table.get(title, title)


def format_end_time(event: Event, tz: tzinfo) -> str:
    return event.end.astimezone(tz).strftime(END_TIME_FORMAT)


def elapsed_fraction(event: Event, now: datetime) -> float:
    # A zero-length event divides by zero; start < end is the caller's job.
    total = (event.end - event.start).total_seconds()
    passed = (now - event.start).total_seconds()
    return min(1.0, max(0.0, passed / total))


def minutes_until(event: Event, now: datetime) -> int:
    return int((event.start - now).total_seconds() / 60)


def _split(percent: float, width: int) -> tuple[int, float]:
    exact = percent / 100 * width
    full = min(max(int(exact), 0), width)
    return full, exact - full


def _choose_layout(full: int, width: int, label_len: int) -> LabelLayout:
    if width - full > label_len:
        return LabelLayout.IN_EMPTY
    return LabelLayout.OVERLAY


def classify(event: Optional[Event], now: datetime, width: int, label_len: int = len("00:00")) -> Outcome:
    if event is None:
        return NoEvent()
    if now < event.start:
        return Upcoming(event, minutes_until(event, now))

    percent = elapsed_fraction(event, now) * 100
    full, _ = _split(percent, width)
    return InProgress(event, percent, _choose_layout(full, width, label_len))


def layout_bar(percent: float, width: int, label: str) -> BarSegments:
    """Lay out ``width`` cells for ``percent`` with ``label`` embedded.

    The fill runs in whole cells plus one boundary glyph picked from
    ``BLOCKS`` by the fractional remainder. When more than ``len(label)``
    cells stay empty, the label takes the tail of the bar. Otherwise it is
    drawn over the end of the filled run so the fill is not split in two.
    """
    if len(label) > width:
        raise ValueError(f"Label {label!r} does not fit in {width} cells")

    full, remainder = _split(percent, width)
    index = min(max(int(remainder * len(BLOCKS)), 0), len(BLOCKS) - 1)
    boundary = BLOCKS[index]
    layout = _choose_layout(full, width, len(label))

    if layout is LabelLayout.IN_EMPTY:
        gap = boundary + EMPTY_BLOCK * (width - len(label) - full - 1)
        return BarSegments(layout, FULL_BLOCK * full, label, gap)

    lead = max(0, full - len(label))
    tail = width - lead - len(label)
    if tail <= 0:
        return BarSegments(layout, FULL_BLOCK * lead, label, "")
    # A short fill hidden entirely under the label has no visible boundary.
    if full < len(label):
        boundary = EMPTY_BLOCK
    return BarSegments(layout, FULL_BLOCK * lead, label, boundary + EMPTY_BLOCK * (tail - 1))


def render_bar(percent: float, width: int, label: str) -> str:
    seg = layout_bar(percent, width, label)
    parts = [BAR_OPEN, seg.filled]
    if seg.layout is LabelLayout.IN_EMPTY:
        parts += [seg.gap, seg.label]
    else:
        parts += [HIGHLIGHT, seg.label, HIGHLIGHT_RESET, seg.gap]
    parts += [BAR_CLOSE, f" {percent:.0f}%", SUFFIX]
    return "".join(parts)


def render_upcoming(event: Event, minutes: int, abbreviations: Mapping[str, str] = ABBREVIATIONS) -> str:
    return f"{abbreviate(event.title, abbreviations)} in {minutes}min{SUFFIX}"


def render_status(
    event: Optional[Event],
    now: datetime,
    width: int,
    tz: tzinfo,
    lead_minutes: int = DEFAULT_LEAD_MINUTES,
    abbreviations: Mapping[str, str] = ABBREVIATIONS,
) -> Optional[str]:
    """Return the status-line text for ``event`` at ``now``, or None when nothing is due."""
    if width < MIN_WIDTH:
        raise ValueError(f"Size must be at least {MIN_WIDTH}: {width} < {MIN_WIDTH}")

    label = format_end_time(event, tz) if event is not None else ""
    outcome = classify(event, now, width, len(label))

    if isinstance(outcome, NoEvent):
        return None
    if isinstance(outcome, Upcoming):
        if outcome.minutes_until_start > lead_minutes:
            return None
        return render_upcoming(outcome.event, outcome.minutes_until_start, abbreviations)
    return render_bar(outcome.percent, width, label)
