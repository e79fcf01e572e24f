from __future__ import annotations

import dataclasses

import pytest
import requests

from conftest import FakeResponse, FakeSession
from services.brightdata_client import BrightDataClient
from services.errors import ConfigurationError, GatewayError, GatewayTransportError


def _client(settings, responses, sleeps=None):
    session = FakeSession(responses)
    sleep = sleeps.append if sleeps is not None else (lambda s: None)
    return BrightDataClient(settings, session=session, sleep=sleep), session


def test_trigger_posts_urls_and_returns_snapshot_id(settings):
    client, session = _client(settings, [FakeResponse(200, {"snapshot_id": "s_123"})])

    snapshot_id = client.trigger("company", ["https://www.linkedin.com/company/acme"])

    assert snapshot_id == "s_123"
    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "https://api.brightdata.test/datasets/v3/trigger"
    assert call["params"] == {"dataset_id": "gd_company_test", "include_errors": "true"}
    assert call["json"] == [{"url": "https://www.linkedin.com/company/acme"}]
    assert call["headers"]["Authorization"] == "Bearer test-key"
    assert client.api_calls_made == 1


def test_missing_api_key_fails_before_any_call(settings):
    client, session = _client(dataclasses.replace(settings, brightdata_api_key=None), [])
    with pytest.raises(ConfigurationError, match="BRIGHTDATA_API_KEY not configured"):
        client.trigger("profile", ["https://linkedin.com/in/a"])
    with pytest.raises(ConfigurationError):
        client.poll_snapshot("s_1")
    assert session.calls == []


def test_trigger_error_surfaces_vendor_text(settings):
    client, _ = _client(settings, [FakeResponse(401, text="invalid token")])
    with pytest.raises(GatewayError, match="Failed to trigger scrape: invalid token"):
        client.trigger("profile", ["https://linkedin.com/in/a"])


def test_trigger_without_snapshot_id(settings):
    client, _ = _client(settings, [FakeResponse(200, {"status": "queued"})])
    with pytest.raises(GatewayError, match="No snapshot ID returned from Bright Data"):
        client.trigger("profile", ["https://linkedin.com/in/a"])


def test_trigger_transport_error_is_retryable(settings):
    client, _ = _client(settings, [requests.exceptions.ConnectionError("boom")])
    with pytest.raises(GatewayTransportError) as exc:
        client.trigger("profile", ["https://linkedin.com/in/a"])
    assert exc.value.retryable is True


def test_poll_snapshot_states(settings):
    client, session = _client(settings, [
        FakeResponse(202, {"status": "running"}),
        FakeResponse(200, [{"name": "Acme"}]),
        FakeResponse(200, {"name": "Solo"}),
        FakeResponse(500, text="snapshot failed"),
    ])

    processing = client.poll_snapshot("s_1")
    assert not processing.ready and not processing.failed

    ready = client.poll_snapshot("s_1")
    assert ready.ready and ready.records == [{"name": "Acme"}]

    # A single object is wrapped into a list
    single = client.poll_snapshot("s_1")
    assert single.records == [{"name": "Solo"}]

    failed = client.poll_snapshot("s_1")
    assert failed.failed and failed.error == "snapshot failed" and failed.status_code == 500

    assert session.calls[0]["url"] == "https://api.brightdata.test/datasets/v3/snapshot/s_1"
    assert session.calls[0]["params"] == {"format": "json"}


def test_poll_snapshot_keeps_records_opaque(settings):
    client, _ = _client(settings, [
        FakeResponse(200, None),
        FakeResponse(200, [None, "x", {"name": "A"}]),
    ])

    empty = client.poll_snapshot("s_1")
    assert empty.ready and empty.records == []

    mixed = client.poll_snapshot("s_1")
    assert mixed.ready and mixed.records == [None, "x", {"name": "A"}]


def test_poll_until_ready_sleeps_between_attempts(settings):
    sleeps = []
    client, _ = _client(settings, [
        FakeResponse(202),
        FakeResponse(202),
        FakeResponse(200, [{"name": "Acme"}]),
    ], sleeps=sleeps)

    records = client.poll_until_ready("s_1", max_attempts=5, interval_ms=1500)

    assert records == [{"name": "Acme"}]
    assert sleeps == [1.5, 1.5]


def test_poll_until_ready_gives_up(settings):
    sleeps = []
    client, _ = _client(settings, [FakeResponse(202)] * 3, sleeps=sleeps)
    with pytest.raises(GatewayError, match="Snapshot not ready after 3 attempts"):
        client.poll_until_ready("s_1", max_attempts=3, interval_ms=10)
    # No sleep after the last attempt
    assert len(sleeps) == 2


def test_poll_until_ready_raises_on_snapshot_error(settings):
    client, _ = _client(settings, [FakeResponse(400, text="bad snapshot")])
    with pytest.raises(GatewayError, match=r"Snapshot error \(400\): bad snapshot"):
        client.poll_until_ready("s_1", max_attempts=3, interval_ms=0)
