from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from dotenv import load_dotenv


def _load_env() -> None:
    # Centralized dotenv loading; safe if .env missing
    load_dotenv()


def _as_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    # Bright Data
    brightdata_api_key: str | None
    brightdata_base_url: str
    profile_dataset_id: str
    company_dataset_id: str

    # Scrape limits / polling
    max_batch_urls: int
    poll_max_attempts: int
    poll_interval_ms: int
    poller_interval_seconds: float
    poller_max_workers: int
    http_timeout_seconds: int

    # Core/runtime
    db_path: str
    run_env: str
    log_level: str

    # HTTP surface
    api_token: str | None = None
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    # Logging/tracing
    scrape_trace: bool = False
    scrape_log_path: str = "logs/scrape_calls.jsonl"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_env()
    from config.datasets import DATASETS

    return Settings(
        brightdata_api_key=os.getenv("BRIGHTDATA_API_KEY") or None,
        brightdata_base_url=os.getenv("BRIGHTDATA_BASE_URL", "https://api.brightdata.com").rstrip("/"),
        profile_dataset_id=DATASETS["profile"]["dataset_id"],
        company_dataset_id=DATASETS["company"]["dataset_id"],
        max_batch_urls=int(os.getenv("SCRAPE_MAX_URLS", "20")),
        poll_max_attempts=int(os.getenv("SCRAPE_POLL_MAX_ATTEMPTS", "20")),
        poll_interval_ms=int(os.getenv("SCRAPE_POLL_INTERVAL_MS", "15000")),
        poller_interval_seconds=float(os.getenv("POLLER_INTERVAL_SECONDS", "15")),
        poller_max_workers=int(os.getenv("POLLER_MAX_WORKERS", "4")),
        http_timeout_seconds=int(os.getenv("HTTP_TIMEOUT_SECONDS", "30")),
        db_path=os.getenv("DB_PATH", "crm.db"),
        run_env=os.getenv("RUN_ENV", "local"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        api_token=os.getenv("APP_API_TOKEN") or None,
        api_host=os.getenv("API_HOST", "127.0.0.1"),
        api_port=int(os.getenv("API_PORT", "8000")),
        scrape_trace=_as_bool(os.getenv("SCRAPE_TRACE", "false")),
        scrape_log_path=os.getenv("SCRAPE_LOG_PATH", "logs/scrape_calls.jsonl"),
    )
