import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
import requests

from lecturebar.source import FetchError, FetchFailed, ParseFailed, ResponseUnreadable, fetch_events

LECTURE = {
    "entityType": "lecture",
    "date": "2025-10-06T00:00:00Z",
    "site": "KA",
    "startTime": "2025-10-06T07:00:00Z",
    "endTime": "2025-10-06T08:30:00Z",
    "name": "Programmieren",
    "type": "PRESENCE",
    "lecturer": "Dr. Example",
    "rooms": ["A 1.23", "A 1.24"],
    "course": "KA-TINF25B6",
    "id": 17,
}


class DummyResp:
    def __init__(self, body: bytes = b"", status: int = 200, content_error: Exception | None = None):
        self._body = body
        self.status_code = status
        self.encoding = "utf-8"
        self._content_error = content_error

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error")

    @property
    def content(self) -> bytes:
        if self._content_error is not None:
            raise self._content_error
        return self._body


class DummySession:
    def __init__(self, resp: DummyResp | None = None, error: Exception | None = None):
        self.resp = resp
        self.error = error
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.resp


def test_fetch_parses_lectures():
    session = DummySession(DummyResp(json.dumps([LECTURE]).encode("utf-8")))

    events = fetch_events("https://api.example/events", timeout=4, session=session)

    assert session.calls[0][0] == "https://api.example/events"
    assert session.calls[0][1]["timeout"] == 4
    assert len(events) == 1
    event = events[0]
    assert event.id == 17
    assert event.title == "Programmieren"
    assert event.start == datetime(2025, 10, 6, 9, 0, tzinfo=ZoneInfo("Europe/Berlin"))
    assert event.kind == "PRESENCE"
    assert event.location == "A 1.23, A 1.24"


def test_fetch_accepts_missing_ancillary_fields():
    minimal = {"startTime": LECTURE["startTime"], "endTime": LECTURE["endTime"], "name": "BWL"}
    session = DummySession(DummyResp(json.dumps([minimal]).encode("utf-8")))

    events = fetch_events("u", session=session)

    assert events[0].title == "BWL"
    assert events[0].rooms == ()
    assert events[0].location is None
    assert events[0].date is None


def test_connection_error_maps_to_fetch_failed():
    session = DummySession(error=requests.ConnectionError("unreachable"))

    with pytest.raises(FetchFailed, match="Failed to fetch from API endpoint."):
        fetch_events("u", session=session)


def test_http_error_maps_to_fetch_failed():
    session = DummySession(DummyResp(b"oops", status=502))

    with pytest.raises(FetchFailed):
        fetch_events("u", session=session)


def test_broken_body_maps_to_response_unreadable():
    resp = DummyResp(content_error=requests.exceptions.ChunkedEncodingError("truncated"))

    with pytest.raises(ResponseUnreadable, match="Failed to read API response."):
        fetch_events("u", session=DummySession(resp))


def test_undecodable_body_maps_to_parse_failed():
    with pytest.raises(ParseFailed):
        fetch_events("u", session=DummySession(DummyResp(b"\xff\xfe\xfa")))


def test_body_is_decoded_as_utf8_regardless_of_header_charset():
    lecture = dict(LECTURE, name="Einführung")
    resp = DummyResp(json.dumps([lecture], ensure_ascii=False).encode("utf-8"))
    resp.encoding = "ISO-8859-1"

    events = fetch_events("u", session=DummySession(resp))

    assert events[0].title == "Einführung"


def test_default_session_is_closed_after_fetch(monkeypatch):
    created = []

    class ClosingSession(DummySession):
        def __init__(self):
            super().__init__(DummyResp(json.dumps([LECTURE]).encode("utf-8")))
            self.headers = {}
            self.closed = False
            created.append(self)

        def close(self):
            self.closed = True

    monkeypatch.setattr("lecturebar.source.requests.Session", ClosingSession)

    events = fetch_events("u")

    assert len(events) == 1
    assert created[0].closed is True
    assert created[0].headers["User-Agent"] == "lecturebar/1.0"
    assert "stream" not in created[0].calls[0][1]


def test_default_session_is_closed_when_fetch_fails(monkeypatch):
    created = []

    class FailingSession(DummySession):
        def __init__(self):
            super().__init__(error=requests.ConnectionError("unreachable"))
            self.headers = {}
            self.closed = False
            created.append(self)

        def close(self):
            self.closed = True

    monkeypatch.setattr("lecturebar.source.requests.Session", FailingSession)

    with pytest.raises(FetchFailed):
        fetch_events("u")

    assert created[0].closed is True


def test_caller_session_is_left_open():
    session = DummySession(DummyResp(b"[]"))
    session.close = lambda: pytest.fail("caller's session must not be closed")

    assert fetch_events("u", session=session) == []


@pytest.mark.parametrize(
    "body",
    [
        b"<html>maintenance</html>",
        b'{"error": "not a list"}',
        b'[{"name": "Analysis"}]',
        b'[{"name": "Analysis", "startTime": "soon", "endTime": "later"}]',
        b"[42]",
    ],
)
def test_malformed_payload_maps_to_parse_failed(body: bytes):
    with pytest.raises(ParseFailed, match="Failed to parse JSON."):
        fetch_events("u", session=DummySession(DummyResp(body)))


def test_all_errors_share_a_base_class():
    assert issubclass(FetchFailed, FetchError)
    assert issubclass(ResponseUnreadable, FetchError)
    assert issubclass(ParseFailed, FetchError)
