"""Download availability resolver.

Probes every enabled mirror source for a game identifier concurrently and
returns one ProbeResult per source, in configuration order.
"""

from __future__ import annotations

import csv
import io
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from constants import CANCEL_POLL_INTERVAL, DEFAULT_TIMEOUT, PROBE_GRACE, USER_AGENT
from exceptions import ResolveCancelled
from models import ProbeResult, SourceDescriptor
from sources import enabled_sources

__all__ = [
    "build_session",
    "classify_status",
    "probe_source",
    "resolve",
    "to_csv_bytes",
]

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], requests.Session]


def build_session() -> requests.Session:
    """Create a `requests.Session` for probing; each probe is attempted once."""
    session = requests.Session()
    retry = Retry(total=0, read=False, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers.update({"User-Agent": USER_AGENT})
    return session


def _make_result(source: SourceDescriptor) -> ProbeResult:
    return {
        "source_name": source.name,
        "available": False,
        "direct_url": None,
        "status": None,
        "error": None,
    }


def _failed_result(source: SourceDescriptor, error: str) -> ProbeResult:
    result = _make_result(source)
    result["error"] = error
    return result


def classify_status(source: SourceDescriptor, url: str, status: int) -> ProbeResult:
    """Interpret an observed HTTP status against the source's contract."""
    result = _make_result(source)
    result["status"] = status
    if status == source.success_code:
        result["available"] = True
        result["direct_url"] = url
    elif status != source.unavailable_code:
        result["error"] = f"unexpected status {status}"
    return result


def probe_source(
    session: requests.Session,
    source: SourceDescriptor,
    game_id: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> ProbeResult:
    """Issue a single request against one source and classify the outcome."""
    url = source.probe_url(game_id)
    try:
        # stream=True: only the status line and headers are read
        resp = session.get(url, timeout=timeout, allow_redirects=True, stream=True)
    except requests.exceptions.SSLError as exc:
        logger.warning("Probe %s: TLS failure: %s", source.name, exc)
        return _failed_result(source, "ssl_error")
    except requests.exceptions.Timeout as exc:
        logger.warning("Probe %s: timed out after %ss: %s", source.name, timeout, exc)
        return _failed_result(source, "timeout")
    except requests.exceptions.ConnectionError as exc:
        logger.warning("Probe %s: connection failed: %s", source.name, exc)
        return _failed_result(source, "connection_error")
    except requests.exceptions.RequestException as exc:
        logger.warning("Probe %s: request failed: %s", source.name, exc)
        return _failed_result(source, "request_error")

    try:
        status = resp.status_code
    finally:
        resp.close()

    logger.debug("Probe %s -> HTTP %s", source.name, status)
    return classify_status(source, url, status)


class _ProbeTask:
    """One probe running on its own daemon thread.

    Daemon threads never hold the interpreter open: a mirror that keeps a
    socket busy past the deadline is abandoned along with its thread.
    """

    def __init__(
        self,
        session: requests.Session,
        source: SourceDescriptor,
        game_id: str,
        timeout: float,
    ) -> None:
        self.source = source
        self.finished = threading.Event()
        self.result: Optional[ProbeResult] = None
        self.exc: Optional[BaseException] = None
        self._thread = threading.Thread(
            target=self._run,
            args=(session, game_id, timeout),
            name=f"probe-{source.name}",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def _run(self, session: requests.Session, game_id: str, timeout: float) -> None:
        try:
            self.result = probe_source(session, self.source, game_id, timeout)
        except Exception as exc:  # noqa: BLE001 - reported through the result
            self.exc = exc
        finally:
            self.finished.set()

    def collect(self) -> ProbeResult:
        if not self.finished.is_set():
            logger.warning("Probe %s: abandoned past its deadline", self.source.name)
            return _failed_result(self.source, "timeout")
        if self.exc is not None or self.result is None:
            logger.error("Probe %s: unexpected failure: %r", self.source.name, self.exc)
            return _failed_result(self.source, "request_error")
        return self.result


def _wait_for_batch(
    tasks: Sequence[_ProbeTask],
    deadline: float,
    cancel_event: Optional[threading.Event],
) -> None:
    pending = list(tasks)
    while pending:
        if cancel_event is not None and cancel_event.is_set():
            raise ResolveCancelled("Availability check cancelled")
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return
        if cancel_event is not None:
            remaining = min(remaining, CANCEL_POLL_INTERVAL)
        pending[0].finished.wait(timeout=remaining)
        pending = [task for task in pending if not task.finished.is_set()]


def resolve(
    game_id: str,
    sources: Sequence[SourceDescriptor],
    *,
    timeout: float = DEFAULT_TIMEOUT,
    session_factory: SessionFactory = build_session,
    cancel_event: Optional[threading.Event] = None,
) -> List[ProbeResult]:
    """Check every enabled source for ``game_id`` and return the full batch.

    Probes run concurrently and share one deadline of ``timeout`` seconds
    (plus a short grace period); a probe still running past it is reported
    as ``"timeout"`` and left to finish on its daemon thread. The result
    order always follows ``sources``.

    Setting ``cancel_event`` abandons the in-flight probes and raises
    ResolveCancelled; no partial batch is returned.
    """
    game_id = (game_id or "").strip()
    if not game_id:
        raise ValueError("game_id must not be empty")

    active = enabled_sources(sources)
    if not active:
        logger.info("No enabled sources; nothing to check for %s", game_id)
        return []

    session = session_factory()
    try:
        tasks = [_ProbeTask(session, source, game_id, timeout) for source in active]
        for task in tasks:
            task.start()
        _wait_for_batch(tasks, time.monotonic() + timeout + PROBE_GRACE, cancel_event)
        if cancel_event is not None and cancel_event.is_set():
            raise ResolveCancelled("Availability check cancelled")
        results = [task.collect() for task in tasks]
    finally:
        session.close()

    logger.info(
        "Checked %d source(s) for %s: %d available",
        len(results),
        game_id,
        sum(1 for res in results if res["available"]),
    )
    return results


def to_csv_bytes(batches: Mapping[str, Sequence[ProbeResult]]) -> bytes:
    """Serialize batches keyed by game id into CSV and return the encoded bytes."""
    output = io.StringIO()
    fieldnames = ["game_id", "source_name", "available", "status", "direct_url", "error"]
    writer = csv.DictWriter(output, fieldnames=fieldnames)
    writer.writeheader()
    for game_id, rows in batches.items():
        for r in rows:
            row: Dict[str, Any] = dict(r)
            row["game_id"] = game_id
            row["status"] = "" if r["status"] is None else r["status"]
            row["direct_url"] = r["direct_url"] or ""
            row["error"] = r["error"] or ""
            writer.writerow(row)
    return output.getvalue().encode("utf-8")
