from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from models.import_outcome import RecordOutcome


_NOUNS = {"profile": "profiles", "company": "companies"}


def summarize_outcomes(kind: str, outcomes: Iterable[RecordOutcome]) -> Dict[str, Any]:
    """Roll per-record outcomes up into counts and a one-line message.

    Example message: "3 of 5 profiles imported, 2 failed: <url>: <reason>; <url>: <reason>"
    """
    outcomes = list(outcomes)
    counts = {"saved": 0, "exists": 0, "skipped": 0, "error": 0}
    for o in outcomes:
        counts[o.status] = counts.get(o.status, 0) + 1

    total = len(outcomes)
    imported = counts["saved"] + counts["exists"]
    failed = [o for o in outcomes if o.status in ("skipped", "error")]
    noun = _NOUNS.get(kind, "records")

    message = f"{imported} of {total} {noun} imported"
    if counts["exists"]:
        message += f" ({counts['exists']} already existed)"
    if failed:
        reasons = "; ".join(f"{o.url or o.name or '?'}: {o.message or o.status}" for o in failed)
        message += f", {len(failed)} failed: {reasons}"

    return {
        "kind": kind,
        "total": total,
        "imported": imported,
        "failed": len(failed),
        "counts": counts,
        "message": message,
    }


def _trace_usage_for_run(run_id: str) -> Dict[str, int]:
    """Count traced vendor calls per operation for the given run_id.

    Returns dict like { 'trigger': N, 'poll_snapshot': M }
    """
    from config.settings import get_settings

    result: Dict[str, int] = {}
    log_path = Path(get_settings().scrape_log_path)
    if not log_path.exists():
        return result
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            try:
                rec = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(rec, dict) or rec.get("run_id") != run_id:
                continue
            op = rec.get("operation") or "unknown"
            result[op] = result.get(op, 0) + 1
    return result


def print_summary(summary: Dict[str, Any], api_calls: Optional[int] = None, output_path: Optional[Path] = None) -> None:
    """Print summary of an import run."""
    counts = summary.get("counts", {})

    print("\n" + "="*60)
    print(f"LINKEDIN {str(summary.get('kind', 'record')).upper()} IMPORT - SUMMARY")
    print("="*60)
    print(f"Records: {summary.get('total', 0)}")
    if api_calls is not None:
        print(f"API Calls Made: {api_calls}")
    print()
    print("Outcomes:")
    print(f"  Saved: {counts.get('saved', 0)}")
    print(f"  Already Existing: {counts.get('exists', 0)}")
    print(f"  Skipped: {counts.get('skipped', 0)}")
    print(f"  Errors: {counts.get('error', 0)}")
    print()
    print(summary.get("message", ""))
    # Vendor call counts for the current RUN_ID if tracing is enabled
    from config.settings import get_settings
    run_id = os.getenv("RUN_ID")
    if run_id and get_settings().scrape_trace:
        usage = _trace_usage_for_run(run_id)
        if usage:
            print("Bright Data Calls:")
            for operation, calls in usage.items():
                print(f"  {operation}: {calls}")
    if output_path:
        print(f"Output File: {output_path}")
    print("="*60)
