from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest


def pytest_configure():
    # Ensure project root is on sys.path for absolute imports like 'services.scrape_jobs'
    root = Path(__file__).resolve().parents[1]
    if str(root) not in sys.path:
        sys.path.insert(0, str(root))
    # Set test environment knobs
    os.environ.setdefault("RUN_ENV", "test")
    os.environ.setdefault("SCRAPE_TRACE", "false")
    os.environ.setdefault("LOG_LEVEL", "WARNING")


class FakeResponse:
    _NO_JSON = object()

    def __init__(self, status_code: int = 200, json_data: Any = _NO_JSON, text: str = ""):
        self.status_code = status_code
        self._json = json_data
        self.text = text

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        if self._json is FakeResponse._NO_JSON:
            raise ValueError("No JSON body")
        return self._json


class FakeSession:
    """Stands in for requests.Session; answers queued responses and records calls."""

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def _next(self, method: str, url: str, **kwargs: Any) -> Any:
        self.calls.append({"method": method, "url": url, **kwargs})
        answer = self.responses.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def post(self, url: str, **kwargs: Any) -> Any:
        return self._next("POST", url, **kwargs)

    def get(self, url: str, **kwargs: Any) -> Any:
        return self._next("GET", url, **kwargs)


class FakeGateway:
    """In-memory scrape gateway with call counters."""

    def __init__(self, snapshot_id: str = "snap-1"):
        self.snapshot_id = snapshot_id
        self.triggered: List[Dict[str, Any]] = []
        self.polls: List[Any] = []
        self.poll_calls = 0
        self.records: List[Dict[str, Any]] = []
        self.trigger_error: Optional[Exception] = None

    def trigger(self, kind: str, urls: List[str]) -> str:
        if self.trigger_error is not None:
            raise self.trigger_error
        self.triggered.append({"kind": kind, "urls": list(urls)})
        return self.snapshot_id

    def poll_snapshot(self, snapshot_id: str):
        from services.brightdata_client import SnapshotPoll

        self.poll_calls += 1
        if self.polls:
            answer = self.polls.pop(0)
            if isinstance(answer, Exception):
                raise answer
            return answer
        return SnapshotPoll(ready=False, status_code=202)

    def poll_until_ready(self, snapshot_id: str, max_attempts=None, interval_ms=None):
        self.poll_calls += 1
        return list(self.records)


class ManualTask:
    """Task handle that never runs by itself; tests call the function directly."""

    def __init__(self, interval: float, func):
        self.interval = interval
        self.func = func
        self.running = False
        self.starts = 0
        self.pokes = 0
        self.shutdowns = 0

    def start(self) -> None:
        self.running = True
        self.starts += 1

    def poke(self) -> None:
        self.pokes += 1

    def stop(self) -> None:
        self.running = False

    def shutdown(self) -> None:
        self.running = False
        self.shutdowns += 1


@pytest.fixture
def settings(tmp_path):
    from config.settings import Settings

    return Settings(
        brightdata_api_key="test-key",
        brightdata_base_url="https://api.brightdata.test",
        profile_dataset_id="gd_profile_test",
        company_dataset_id="gd_company_test",
        max_batch_urls=20,
        poll_max_attempts=3,
        poll_interval_ms=0,
        poller_interval_seconds=0.01,
        poller_max_workers=2,
        http_timeout_seconds=5,
        db_path=str(tmp_path / "crm.db"),
        run_env="test",
        log_level="WARNING",
    )


@pytest.fixture
def db(settings):
    from db.connection import get_connection
    from db.schema import bootstrap

    conn = get_connection(settings.db_path)
    bootstrap(conn)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def manual_tasks():
    """Task factory collecting the ManualTask handles it creates."""
    created: List[ManualTask] = []

    def factory(interval, func):
        task = ManualTask(interval, func)
        created.append(task)
        return task

    factory.created = created  # type: ignore[attr-defined]
    return factory
