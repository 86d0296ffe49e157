from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

from .cache import retrieve_events
from .config import load_config
from .render import MIN_WIDTH, merge_abbreviations, render_status
from .selector import select_current, sort_by_end
from .source import FetchError

CONFIG_PATH_DEFAULT = "~/.config/lecturebar/config.yaml"

log = logging.getLogger(__name__)


def _configure_logging(verbose: bool) -> None:
    # stdout carries the status line; diagnostics go to stderr.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_once(
    config_path: str = CONFIG_PATH_DEFAULT,
    size: Optional[int] = None,
    ttl: Optional[int] = None,
    cache_path: Optional[str] = None,
    now: Optional[datetime] = None,
) -> int:
    load_dotenv()
    cfg = load_config(config_path)
    tz = ZoneInfo(cfg.timezone)

    size = cfg.bar.size if size is None else size
    ttl = cfg.cache.ttl_minutes if ttl is None else ttl
    if size < MIN_WIDTH:
        print(f"Fatal: Size must be at least {MIN_WIDTH}: {size} < {MIN_WIDTH}")
        return 1

    endpoint = os.environ.get("LECTUREBAR_ENDPOINT", "") or cfg.source.endpoint
    cache_path = cache_path or os.environ.get("LECTUREBAR_CACHE", "") or cfg.cache.path
    now = now or datetime.now(tz=tz)

    try:
        lectures = retrieve_events(endpoint, cache_path, ttl, now, timeout=cfg.source.timeout_seconds)
    except FetchError as e:
        print(e)
        return 1

    current = select_current(sort_by_end(lectures), now)
    log.debug("Selected %s out of %d lectures", current.title if current else None, len(lectures))

    line = render_status(
        current,
        now,
        size,
        tz,
        lead_minutes=cfg.bar.lead_minutes,
        abbreviations=merge_abbreviations(cfg.abbreviations),
    )
    if line is not None:
        print(line)
    return 0


def main():
    import argparse

    ap = argparse.ArgumentParser(description="Print a tmux status-line timer for the current lecture")
    ap.add_argument("--size", type=int, default=None, help="Length of the progress bar")
    ap.add_argument("--ttl", type=int, default=None, help="TTL of the cache in minutes")
    ap.add_argument("--config", default=CONFIG_PATH_DEFAULT)
    ap.add_argument("--cache", default=None, help="Cache file path")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args()

    _configure_logging(args.verbose)
    raise SystemExit(run_once(config_path=args.config, size=args.size, ttl=args.ttl, cache_path=args.cache))


if __name__ == "__main__":
    main()
