from __future__ import annotations

from typing import Any, List, Optional, Protocol

from services.brightdata_client import SnapshotPoll


class ScrapeGatewayPort(Protocol):
    def trigger(self, kind: str, urls: List[str]) -> str:
        ...

    def poll_snapshot(self, snapshot_id: str) -> SnapshotPoll:
        ...

    def poll_until_ready(
        self,
        snapshot_id: str,
        max_attempts: Optional[int] = None,
        interval_ms: Optional[int] = None,
    ) -> List[Any]:
        ...
