from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence
import json
import logging

from .models import CachedSnapshot, Event, parse_timestamp
from .source import fetch_events

log = logging.getLogger(__name__)


def load_cache(path: str) -> Optional[CachedSnapshot]:
    """Read the cached lecture list; a missing or corrupt file counts as a miss."""
    p = Path(path).expanduser()
    if not p.exists():
        return None
    try:
        data: Dict[str, Any] = json.loads(p.read_text(encoding="utf-8"))
        return CachedSnapshot(
            retrieved_at=parse_timestamp(data["retrievedTime"]),
            events=tuple(Event.from_wire(item) for item in data.get("lectures") or []),
        )
    except (OSError, ValueError, TypeError, KeyError, AttributeError) as e:
        log.debug("Ignoring unreadable cache %s: %s", p, e)
        return None


def save_cache(path: str, events: Sequence[Event], retrieved_at: datetime) -> bool:
    p = Path(path).expanduser()
    payload = {
        "retrievedTime": retrieved_at.isoformat(),
        "lectures": [e.to_wire() for e in events],
    }
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        log.warning("Could not write cache %s: %s", p, e)
        return False
    return True


def is_stale(snapshot: CachedSnapshot, now: datetime, ttl_minutes: int) -> bool:
    age_minutes = (now - snapshot.retrieved_at).total_seconds() / 60
    return age_minutes > ttl_minutes


def retrieve_events(
    endpoint: str,
    cache_path: str,
    ttl_minutes: int,
    now: datetime,
    timeout: float = 10,
    fetch: Optional[Callable[..., List[Event]]] = None,
) -> List[Event]:
    snapshot = load_cache(cache_path)
    if snapshot is not None and not is_stale(snapshot, now, ttl_minutes):
        log.debug("Using %d cached lectures from %s", len(snapshot.events), snapshot.retrieved_at.isoformat())
        return list(snapshot.events)

    events = (fetch or fetch_events)(endpoint, timeout=timeout)
    save_cache(cache_path, events, now)
    return events
