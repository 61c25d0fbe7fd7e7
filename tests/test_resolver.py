"""Unit tests for the availability resolver."""

from __future__ import annotations

import csv
import threading
from dataclasses import replace
from typing import Any, Dict, List, Optional, Union

import pytest
import requests

import resolver
from exceptions import ResolveCancelled
from models import SourceDescriptor
from resolver import classify_status, probe_source, resolve, to_csv_bytes

Outcome = Union[int, Exception]


class _DummyResponse:  # pylint: disable=too-few-public-methods
    """Minimal stub mimicking requests.Response for tests."""

    def __init__(self, *, status_code: int) -> None:
        self.status_code = status_code
        self.closed = False

    def close(self) -> None:
        self.closed = True


class _DummySession(requests.Session):
    """Session answering each URL with a fixed status code or exception."""

    def __init__(
        self,
        outcomes: Dict[str, Outcome],
        *,
        barrier: Optional[threading.Barrier] = None,
        block: Optional[threading.Event] = None,
    ) -> None:
        super().__init__()
        self._outcomes = outcomes
        self._barrier = barrier
        self._block = block
        self._lock = threading.Lock()
        self.get_calls: List[str] = []
        self.kwargs: List[Dict[str, Any]] = []
        self.closed = False

    def get(  # type: ignore[override]
        self, url: str, **kwargs: Any
    ) -> _DummyResponse:
        with self._lock:
            self.get_calls.append(url)
            self.kwargs.append(kwargs)
        if self._barrier is not None:
            self._barrier.wait(timeout=5)
        outcome = self._outcomes[url]
        if outcome == "block":
            assert self._block is not None
            self._block.wait(timeout=10)
            raise requests.exceptions.ConnectionError("released")
        if isinstance(outcome, Exception):
            raise outcome
        return _DummyResponse(status_code=outcome)

    def close(self) -> None:
        self.closed = True


def _source(name: str, template: Optional[str] = None, **kwargs: Any) -> SourceDescriptor:
    return SourceDescriptor(
        name=name,
        url_template=template or f"https://{name.lower()}.example/<appid>",
        **kwargs,
    )


def _factory(session: _DummySession):
    def _build() -> _DummySession:
        return session

    return _build


def test_scenario_success_and_unavailable() -> None:
    """A answers 200 and B answers 404: A is available, B is not."""
    sources = [_source("A"), _source("B")]
    session = _DummySession({
        "https://a.example/123": 200,
        "https://b.example/123": 404,
    })

    results = resolve("123", sources, session_factory=_factory(session))

    assert results == [
        {
            "source_name": "A",
            "available": True,
            "direct_url": "https://a.example/123",
            "status": 200,
            "error": None,
        },
        {
            "source_name": "B",
            "available": False,
            "direct_url": None,
            "status": 404,
            "error": None,
        },
    ]
    assert session.closed is True


def test_scenario_timeout_has_no_status() -> None:
    """A probe that times out reports the failure category and no status."""
    sources = [_source("C", "https://x/<appid>")]
    session = _DummySession({"https://x/123": requests.exceptions.ReadTimeout("slow")})

    results = resolve("123", sources, session_factory=_factory(session))

    assert results == [
        {
            "source_name": "C",
            "available": False,
            "direct_url": None,
            "status": None,
            "error": "timeout",
        }
    ]


def test_all_disabled_returns_empty_list() -> None:
    """No enabled sources is a valid state and never touches the network."""
    built: List[bool] = []

    def _never() -> requests.Session:
        built.append(True)
        return requests.Session()

    sources = [_source("A", enabled=False), _source("B", enabled=False)]

    assert resolve("123", sources, session_factory=_never) == []
    assert resolve("123", [], session_factory=_never) == []
    assert built == []


def test_empty_game_id_is_rejected() -> None:
    """A blank identifier is structurally invalid input."""
    with pytest.raises(ValueError):
        resolve("  ", [_source("A")])


def test_order_follows_configuration_and_disabled_are_skipped() -> None:
    """Output order is configuration order; disabled sources vanish."""
    names = ["One", "Two", "Three", "Four"]
    sources = [_source(n) for n in names]
    outcomes: Dict[str, Outcome] = {f"https://{n.lower()}.example/7": 404 for n in names}

    full = resolve("7", sources, session_factory=_factory(_DummySession(outcomes)))
    assert [r["source_name"] for r in full] == names

    sources[1] = replace(sources[1], enabled=False)
    partial = resolve("7", sources, session_factory=_factory(_DummySession(outcomes)))
    assert [r["source_name"] for r in partial] == ["One", "Three", "Four"]

    sources[1] = replace(sources[1], enabled=True)
    restored = resolve("7", sources, session_factory=_factory(_DummySession(outcomes)))
    assert [r["source_name"] for r in restored] == names


def test_probes_run_concurrently() -> None:
    """All probes must be in flight at once: a barrier of N only opens then."""
    sources = [_source(n) for n in ("A", "B", "C")]
    outcomes: Dict[str, Outcome] = {f"https://{n.lower()}.example/1": 200 for n in "abc"}
    session = _DummySession(outcomes, barrier=threading.Barrier(3))

    results = resolve("1", sources, session_factory=_factory(session))

    assert [r["available"] for r in results] == [True, True, True]


def test_unexpected_status_and_network_failures_are_contained() -> None:
    """One bad source never aborts the batch; each failure is categorised."""
    sources = [_source(n) for n in ("Ok", "Weird", "Tls", "Down", "Bad", "Stalled")]
    session = _DummySession({
        "https://ok.example/9": 200,
        "https://weird.example/9": 503,
        "https://tls.example/9": requests.exceptions.SSLError("cert"),
        "https://down.example/9": requests.exceptions.ConnectionError("refused"),
        "https://bad.example/9": requests.exceptions.TooManyRedirects("loop"),
        "https://stalled.example/9": requests.exceptions.ConnectTimeout("no syn-ack"),
    })

    results = resolve("9", sources, session_factory=_factory(session))

    assert [r["error"] for r in results] == [
        None,
        "unexpected status 503",
        "ssl_error",
        "connection_error",
        "request_error",
        "timeout",
    ]
    assert [r["status"] for r in results] == [200, 503, None, None, None, None]
    assert all(r["direct_url"] is None for r in results[1:])


def test_probe_still_running_at_deadline_is_timeout(monkeypatch: pytest.MonkeyPatch) -> None:
    """A probe that never returns is cut off and reported as a timeout."""
    monkeypatch.setattr(resolver, "PROBE_GRACE", 0.0)
    release = threading.Event()
    sources = [_source("Fast"), _source("Hung")]
    session = _DummySession(
        {"https://fast.example/5": 200, "https://hung.example/5": "block"},  # type: ignore[dict-item]
        block=release,
    )

    try:
        results = resolve("5", sources, timeout=0.2, session_factory=_factory(session))
    finally:
        release.set()

    assert results[0]["available"] is True
    assert results[1] == {
        "source_name": "Hung",
        "available": False,
        "direct_url": None,
        "status": None,
        "error": "timeout",
    }


def test_cancel_event_aborts_without_partial_results() -> None:
    """Cancelling mid-flight raises instead of returning a partial batch."""
    release = threading.Event()
    cancel = threading.Event()
    sources = [_source("Fast"), _source("Hung")]
    session = _DummySession(
        {"https://fast.example/5": 200, "https://hung.example/5": "block"},  # type: ignore[dict-item]
        block=release,
    )
    timer = threading.Timer(0.2, cancel.set)
    timer.start()

    try:
        with pytest.raises(ResolveCancelled):
            resolve("5", sources, timeout=5, session_factory=_factory(session), cancel_event=cancel)
    finally:
        timer.cancel()
        release.set()

    assert session.closed is True


def test_concurrent_calls_do_not_share_results() -> None:
    """Two simultaneous resolutions keep their own identifiers and lists."""
    sources = [_source("A"), _source("B")]
    outcomes: Dict[str, Outcome] = {}
    for game_id in ("111", "222"):
        outcomes[f"https://a.example/{game_id}"] = 200
        outcomes[f"https://b.example/{game_id}"] = 200

    def _fresh() -> _DummySession:
        return _DummySession(outcomes)

    collected: Dict[str, List[Any]] = {}

    def _run(game_id: str) -> None:
        collected[game_id] = resolve(game_id, sources, session_factory=_fresh)

    threads = [threading.Thread(target=_run, args=(gid,)) for gid in ("111", "222")]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    for game_id, results in collected.items():
        assert [r["direct_url"] for r in results] == [
            f"https://a.example/{game_id}",
            f"https://b.example/{game_id}",
        ]
    assert collected["111"] is not collected["222"]


def test_probe_source_uses_single_lightweight_get() -> None:
    """One streamed GET with the timeout; the response is closed unread."""
    source = _source("A", "https://host/files/<appid>.zip")
    session = _DummySession({"https://host/files/42.zip": 200})

    result = probe_source(session, source, "42", timeout=3)

    assert result["direct_url"] == "https://host/files/42.zip"
    assert session.get_calls == ["https://host/files/42.zip"]
    assert session.kwargs[0]["stream"] is True
    assert session.kwargs[0]["timeout"] == 3


def test_classify_status_respects_custom_codes() -> None:
    """Per-source codes decide the outcome, not generic HTTP semantics."""
    source = _source("Odd", success_code=204, unavailable_code=410)

    assert classify_status(source, "u", 204)["available"] is True
    assert classify_status(source, "u", 410)["error"] is None
    assert classify_status(source, "u", 200)["error"] == "unexpected status 200"
    assert classify_status(source, "u", 404)["available"] is False


def test_build_session_disables_retries() -> None:
    """Each source gets exactly one attempt per call."""
    session = resolver.build_session()
    try:
        adapter = session.get_adapter("https://example.com")
        assert adapter.max_retries.total == 0
    finally:
        session.close()


def test_to_csv_bytes_flattens_batches() -> None:
    """CSV export writes one row per result, tagged with its game id."""
    rows = {
        "10": [
            {
                "source_name": "A",
                "available": True,
                "direct_url": "https://a/10",
                "status": 200,
                "error": None,
            }
        ],
        "20": [
            {
                "source_name": "A",
                "available": False,
                "direct_url": None,
                "status": None,
                "error": "timeout",
            }
        ],
    }

    decoded = to_csv_bytes(rows).decode("utf-8")  # type: ignore[arg-type]
    parsed = list(csv.DictReader(decoded.splitlines()))

    assert [row["game_id"] for row in parsed] == ["10", "20"]
    assert parsed[0]["available"] == "True"
    assert parsed[1]["status"] == ""
    assert parsed[1]["error"] == "timeout"
