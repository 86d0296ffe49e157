from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict
import yaml

DEFAULT_ENDPOINT = "https://api.dhbw.app/rapla/lectures/KA-TINF25B6/events"
DEFAULT_CACHE_PATH = "~/.cache/lecturebar/cache.json"

@dataclass
class SourceConfig:
    endpoint: str
    timeout_seconds: float

@dataclass
class CacheConfig:
    path: str
    ttl_minutes: int

@dataclass
class BarConfig:
    size: int
    lead_minutes: int

@dataclass
class AppConfig:
    timezone: str
    source: SourceConfig
    cache: CacheConfig
    bar: BarConfig
    abbreviations: Dict[str, str] = field(default_factory=dict)

def load_config(path: str | None) -> AppConfig:
    data: Dict[str, Any] = {}
    if path:
        p = Path(path).expanduser()
        if p.exists():
            data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}

    source = data.get("source", {})
    cache = data.get("cache", {})
    bar = data.get("bar", {})
    abbreviations = data.get("abbreviations") or {}

    return AppConfig(
        timezone=str(data.get("timezone", "Europe/Berlin")),
        source=SourceConfig(
            endpoint=str(source.get("endpoint", DEFAULT_ENDPOINT)),
            timeout_seconds=float(source.get("timeout_seconds", 10)),
        ),
        cache=CacheConfig(
            path=str(cache.get("path", DEFAULT_CACHE_PATH)),
            ttl_minutes=int(cache.get("ttl_minutes", 15)),
        ),
        bar=BarConfig(
            size=int(bar.get("size", 10)),
            lead_minutes=int(bar.get("lead_minutes", 30)),
        ),
        abbreviations={str(k): str(v) for k, v in abbreviations.items()},
    )
