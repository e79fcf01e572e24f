from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional


def _ensure_parent_dir(path: Path) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass


def log_call(
    *,
    caller: str,
    operation: str,
    status_code: Optional[int] = None,
    snapshot_id: Optional[str] = None,
    dataset_id: Optional[str] = None,
    duration_ms: Optional[int] = None,
    status: str = "ok",
    error: Optional[str] = None,
    extras: Optional[Dict[str, Any]] = None,
) -> None:
    """Append a single JSON line describing a Bright Data call if tracing is enabled.

    Controlled by SCRAPE_TRACE / SCRAPE_LOG_PATH in config/settings.py
    """
    from config.settings import get_settings
    # Pick up env changes made after the first settings read (tests monkeypatch env)
    get_settings.cache_clear()
    settings = get_settings()
    if not settings.scrape_trace:
        return

    log_path = Path(settings.scrape_log_path)
    _ensure_parent_dir(log_path)

    payload: Dict[str, Any] = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "caller": caller,
        "operation": operation,
        "status_code": status_code,
        "snapshot_id": snapshot_id,
        "dataset_id": dataset_id,
        "duration_ms": duration_ms,
        "status": status,
        "error": error,
    }
    run_id = os.getenv("RUN_ID")
    if run_id:
        payload["run_id"] = run_id

    if extras:
        # Shallow merge extras under a dedicated key to avoid collisions
        payload["extras"] = extras

    try:
        with log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(payload, ensure_ascii=False) + "\n")
    except OSError:
        # Never break the app on trace failures
        return
