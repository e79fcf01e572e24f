"""
Bright Data datasets API integration for LinkedIn profile and company scrapes.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import requests

from config.datasets import dataset_id_for
from config.settings import Settings, get_settings
from services.errors import ConfigurationError, GatewayError, GatewayTransportError
from utils.scrape_trace import log_call


logger = logging.getLogger(__name__)


@dataclass
class SnapshotPoll:
    """Outcome of a single snapshot probe."""

    ready: bool
    records: List[Any] = field(default_factory=list)
    error: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class BrightDataClient:
    """Trigger/poll wrapper around the Bright Data datasets v3 API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.sleep = sleep
        self.api_calls_made = 0

    def _headers(self) -> Dict[str, str]:
        api_key = self.settings.brightdata_api_key
        if not api_key:
            raise ConfigurationError("BRIGHTDATA_API_KEY not configured")
        return {"Authorization": f"Bearer {api_key}"}

    def trigger(self, kind: str, urls: List[str]) -> str:
        """Submit URLs for scraping and return the snapshot id."""
        headers = self._headers()
        dataset_id = dataset_id_for(kind, self.settings)
        endpoint = f"{self.settings.brightdata_base_url}/datasets/v3/trigger"
        params = {"dataset_id": dataset_id, "include_errors": "true"}
        inputs = [{"url": u} for u in urls]

        logger.info(f"Triggering {kind} scrape for {len(urls)} URLs", extra={"step": "trigger"})
        t0 = time.time()
        try:
            response = self.session.post(
                endpoint,
                params=params,
                json=inputs,
                headers={**headers, "Content-Type": "application/json"},
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            log_call(caller="brightdata.trigger", operation="trigger", dataset_id=dataset_id, status="error", error=str(e))
            raise GatewayTransportError(f"Failed to trigger scrape: {e}") from e
        finally:
            self.api_calls_made += 1
        duration_ms = int((time.time() - t0) * 1000)

        if not response.ok:
            error_text = response.text
            logger.error(
                f"Bright Data trigger failed with status {response.status_code}",
                extra={"step": "trigger", "status": "error", "duration_ms": duration_ms, "error": error_text},
            )
            log_call(caller="brightdata.trigger", operation="trigger", status_code=response.status_code,
                     dataset_id=dataset_id, duration_ms=duration_ms, status="error", error=error_text)
            raise GatewayError(f"Failed to trigger scrape: {error_text}")

        try:
            body = response.json()
        except ValueError:
            body = None
        snapshot_id = body.get("snapshot_id") if isinstance(body, dict) else None
        if not snapshot_id:
            log_call(caller="brightdata.trigger", operation="trigger", status_code=response.status_code,
                     dataset_id=dataset_id, duration_ms=duration_ms, status="error", error="no snapshot id")
            raise GatewayError("No snapshot ID returned from Bright Data")

        logger.info(f"Got snapshot ID: {snapshot_id}", extra={"step": "trigger", "status": "ok", "duration_ms": duration_ms, "snapshot_id": snapshot_id})
        log_call(caller="brightdata.trigger", operation="trigger", status_code=response.status_code,
                 snapshot_id=snapshot_id, dataset_id=dataset_id, duration_ms=duration_ms,
                 extras={"url_count": len(urls)})
        return str(snapshot_id)

    def poll_snapshot(self, snapshot_id: str) -> SnapshotPoll:
        """Probe a snapshot once. 202 is still processing, 200 is ready, anything else is terminal."""
        headers = self._headers()
        endpoint = f"{self.settings.brightdata_base_url}/datasets/v3/snapshot/{snapshot_id}"
        t0 = time.time()
        try:
            response = self.session.get(
                endpoint,
                params={"format": "json"},
                headers=headers,
                timeout=self.settings.http_timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            log_call(caller="brightdata.poll", operation="snapshot", snapshot_id=snapshot_id, status="error", error=str(e))
            raise GatewayTransportError(f"Failed to check snapshot {snapshot_id}: {e}") from e
        finally:
            self.api_calls_made += 1
        duration_ms = int((time.time() - t0) * 1000)

        if response.status_code == 202:
            logger.info(f"Snapshot {snapshot_id} still processing", extra={"step": "poll", "status": "processing", "snapshot_id": snapshot_id})
            log_call(caller="brightdata.poll", operation="snapshot", status_code=202, snapshot_id=snapshot_id,
                     duration_ms=duration_ms, status="processing")
            return SnapshotPoll(ready=False, status_code=202)

        if response.status_code == 200:
            try:
                data = response.json()
            except ValueError:
                error_text = f"Snapshot {snapshot_id} returned an unreadable body"
                log_call(caller="brightdata.poll", operation="snapshot", status_code=200, snapshot_id=snapshot_id,
                         duration_ms=duration_ms, status="error", error=error_text)
                return SnapshotPoll(ready=False, error=error_text, status_code=200)
            # Records stay opaque; a null body is an empty result
            records = data if isinstance(data, list) else ([] if data is None else [data])
            logger.info(f"Snapshot {snapshot_id} ready with {len(records)} results", extra={"step": "poll", "status": "ok", "snapshot_id": snapshot_id})
            log_call(caller="brightdata.poll", operation="snapshot", status_code=200, snapshot_id=snapshot_id,
                     duration_ms=duration_ms, extras={"record_count": len(records)})
            return SnapshotPoll(ready=True, records=records, status_code=200)

        error_text = response.text
        logger.error(
            f"Snapshot {snapshot_id} error ({response.status_code})",
            extra={"step": "poll", "status": "error", "error": error_text, "snapshot_id": snapshot_id},
        )
        log_call(caller="brightdata.poll", operation="snapshot", status_code=response.status_code,
                 snapshot_id=snapshot_id, duration_ms=duration_ms, status="error", error=error_text)
        return SnapshotPoll(ready=False, error=error_text, status_code=response.status_code)

    def poll_until_ready(
        self,
        snapshot_id: str,
        max_attempts: Optional[int] = None,
        interval_ms: Optional[int] = None,
    ) -> List[Any]:
        """Block until the snapshot is ready; used for small interactive fetches."""
        attempts = max_attempts if max_attempts is not None else self.settings.poll_max_attempts
        interval = interval_ms if interval_ms is not None else self.settings.poll_interval_ms

        for attempt in range(attempts):
            logger.info(f"Polling snapshot {snapshot_id}, attempt {attempt + 1}/{attempts}", extra={"step": "poll"})
            poll = self.poll_snapshot(snapshot_id)
            if poll.ready:
                return poll.records
            if poll.failed:
                raise GatewayError(f"Snapshot error ({poll.status_code}): {poll.error}")
            if attempt < attempts - 1:
                self.sleep(interval / 1000.0)

        raise GatewayError(f"Snapshot not ready after {attempts} attempts")
