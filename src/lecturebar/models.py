from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
import re
from typing import Any, Dict, Optional, Tuple

# Upstream emits RFC 3339 fractions of 1-9 digits; fromisoformat on 3.10 wants 3 or 6.
_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    text = _FRACTION_RE.sub(lambda m: "." + m[1][:6].ljust(6, "0"), value.strip())
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@dataclass(frozen=True)
class Event:
    id: int
    title: str                  # wire "name"
    start: datetime             # timezone-aware
    end: datetime               # timezone-aware, start < end expected
    entity_type: str = ""
    date: Optional[datetime] = None
    site: str = ""
    kind: str = ""              # wire "type", e.g. "PRESENCE" / "ONLINE"
    lecturer: str = ""
    rooms: Tuple[str, ...] = ()
    course: str = ""

    @property
    def location(self) -> Optional[str]:
        return ", ".join(self.rooms) or None

    @classmethod
    def from_wire(cls, item: Dict[str, Any]) -> "Event":
        date = item.get("date")
        return cls(
            id=int(item.get("id", 0)),
            title=str(item["name"]),
            start=parse_timestamp(item["startTime"]),
            end=parse_timestamp(item["endTime"]),
            entity_type=str(item.get("entityType", "")),
            date=parse_timestamp(date) if date else None,
            site=str(item.get("site", "")),
            kind=str(item.get("type", "")),
            lecturer=str(item.get("lecturer", "")),
            rooms=tuple(str(r) for r in item.get("rooms") or []),
            course=str(item.get("course", "")),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "entityType": self.entity_type,
            "date": self.date.isoformat() if self.date else None,
            "site": self.site,
            "startTime": self.start.isoformat(),
            "endTime": self.end.isoformat(),
            "name": self.title,
            "type": self.kind,
            "lecturer": self.lecturer,
            "rooms": list(self.rooms),
            "course": self.course,
            "id": self.id,
        }


@dataclass(frozen=True)
class CachedSnapshot:
    retrieved_at: datetime
    events: Tuple[Event, ...]
