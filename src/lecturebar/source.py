from __future__ import annotations

import json
import logging
from typing import List, Optional

import requests

from .models import Event

log = logging.getLogger(__name__)


class FetchError(RuntimeError):
    """Base class for failures retrieving the lecture list."""


class FetchFailed(FetchError):
    def __init__(self) -> None:
        super().__init__("Failed to fetch from API endpoint.")


class ResponseUnreadable(FetchError):
    def __init__(self) -> None:
        super().__init__("Failed to read API response.")


class ParseFailed(FetchError):
    def __init__(self) -> None:
        super().__init__("Failed to parse JSON.")


def _read_body(session: requests.Session, endpoint: str, timeout: float) -> bytes:
    try:
        resp = session.get(endpoint, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        log.debug("GET %s failed: %s", endpoint, exc)
        raise FetchFailed() from exc

    try:
        return resp.content
    except requests.RequestException as exc:
        log.debug("Reading response body failed: %s", exc)
        raise ResponseUnreadable() from exc


def fetch_events(
    endpoint: str,
    timeout: float = 10,
    session: Optional[requests.Session] = None,
) -> List[Event]:
    """Fetch the lecture list from the timetable API.

    Raises one of FetchFailed, ResponseUnreadable or ParseFailed; nothing is retried.
    """
    owns_session = session is None
    if session is None:
        session = requests.Session()
        session.headers.update({"User-Agent": "lecturebar/1.0"})

    try:
        body = _read_body(session, endpoint, timeout)
    finally:
        if owns_session:
            session.close()

    try:
        # JSON is UTF-8/16/32; decode from the bytes, not the HTTP charset.
        payload = json.loads(body)
        if not isinstance(payload, list):
            raise TypeError(f"expected a JSON array, got {type(payload).__name__}")
        events = [Event.from_wire(item) for item in payload]
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        log.debug("Parsing lecture payload failed: %s", exc)
        raise ParseFailed() from exc

    log.debug("Fetched %d lectures from %s", len(events), endpoint)
    return events
