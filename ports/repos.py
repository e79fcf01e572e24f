from __future__ import annotations

from typing import Any, List, Optional, Protocol

from models.scrape_job import ScrapeJob


class JobStorePort(Protocol):
    def create(self, kind: str, urls: List[str], snapshot_id: str) -> ScrapeJob:
        ...

    def get(self, job_id: str) -> Optional[ScrapeJob]:
        ...

    def update_terminal(
        self,
        job_id: str,
        status: str,
        result: Optional[List[Any]] = None,
        error_message: Optional[str] = None,
        completed_at: Optional[str] = None,
    ) -> bool:
        ...

    def list(self, status: Optional[str] = None, limit: int = 50) -> List[ScrapeJob]:
        ...
