import argparse
import json
import os
import threading
import uuid as _uuid
from contextlib import closing
from pathlib import Path

import logging
from db.connection import get_connection
from db import schema
from db.repos.companies_repo import CompaniesRepo
from db.repos.jobs_repo import JobsRepo
from models.scrape_job import TriggerRequest
from pipelines.import_scraped import import_companies, import_profiles, make_company_sync_callback
from services.brightdata_client import BrightDataClient
from services.errors import InvalidInputError, JobNotFoundError, ScrapeError
from services.job_poller import HttpJobChecker, LocalJobChecker, ScrapeJobPoller
from services.reporting import print_summary, summarize_outcomes
from services.scrape_jobs import ScrapeJobController, build_import_urls
from config.settings import get_settings
from utils.logging_setup import init_logging


logger = logging.getLogger(__name__)


def _make_gateway(settings):
    return BrightDataClient(settings)


def _print_json(data):
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _controller(conn, settings, gateway=None):
    return ScrapeJobController(JobsRepo(conn), gateway or _make_gateway(settings), settings)


def cmd_bootstrap(args):
    with closing(get_connection(args.db)) as conn:
        schema.bootstrap(conn)
    print("Schema ready")


def cmd_trigger(args):
    settings = get_settings()
    with closing(get_connection(args.db)) as conn:
        schema.bootstrap(conn)
        result = _controller(conn, settings).trigger(TriggerRequest(urls=args.url, type=args.type))
    _print_json(result)


def cmd_check(args):
    settings = get_settings()
    with closing(get_connection(args.db)) as conn:
        schema.bootstrap(conn)
        result = _controller(conn, settings).check(args.job_id)
    _print_json(result)


def cmd_jobs(args):
    settings = get_settings()
    with closing(get_connection(args.db)) as conn:
        schema.bootstrap(conn)
        result = _controller(conn, settings).list_jobs(status=args.status, limit=args.limit)
    _print_json(result)


def cmd_scrape(args):
    settings = get_settings()
    with closing(get_connection(args.db)) as conn:
        schema.bootstrap(conn)
        result = _controller(conn, settings).scrape(TriggerRequest(urls=args.url, type=args.type))
    _print_json(result)


def _read_input_text(path):
    return Path(path).read_text(encoding="utf-8") if path else None


def _run_import(args, kind):
    settings = get_settings()
    if not os.getenv("RUN_ID"):
        os.environ["RUN_ID"] = _uuid.uuid4().hex
    urls = build_import_urls(kind, args.url, _read_input_text(args.input), cap=settings.max_batch_urls)
    gateway = _make_gateway(settings)
    with closing(get_connection(args.db)) as conn:
        schema.bootstrap(conn)
        records = _controller(conn, settings, gateway).scrape(TriggerRequest(urls=urls, type=kind))["data"]
        if kind == "profile":
            def _progress(n):
                print(f"[{n}/{len(records)}] Imported profile")

            ctx = import_profiles(conn, records, on_processed=_progress if args.progress else None)
        else:
            ctx = import_companies(conn, records)
    outcomes = ctx.settled_outcomes()
    summary = summarize_outcomes(kind, outcomes)
    output_path = None
    if args.output:
        output_path = Path(args.output)
        output_path.write_text(json.dumps({
            "outcomes": [o.model_dump() for o in outcomes],
            "summary": summary,
            "discovered_companies": ctx.meta.get("discovered_companies", []),
        }, indent=2, ensure_ascii=False), encoding="utf-8")
    print_summary(summary, api_calls=getattr(gateway, "api_calls_made", None), output_path=output_path)
    return summary


def cmd_import_profiles(args):
    _run_import(args, "profile")


def cmd_import_companies(args):
    _run_import(args, "company")


def _wait_for(poller, done, timeout):
    poller.start()
    try:
        finished = done.wait(timeout)
    finally:
        poller.stop()
    return finished


def cmd_sync_companies(args):
    settings = get_settings()
    gateway = _make_gateway(settings)
    with closing(get_connection(args.db)) as conn:
        schema.bootstrap(conn)
        repo = CompaniesRepo(conn)
        selected = repo.list_by_ids(args.company_id) if args.company_id else repo.list_needing_update()
        targets = [c for c in selected if c.get("linkedin_url")]
        if not targets:
            print("No companies with LinkedIn URLs to sync")
            return
        urls = [c["linkedin_url"] for c in targets]
        response = _controller(conn, settings, gateway).trigger(TriggerRequest(urls=urls, type="company"))
    _print_json(response)
    if not response.get("job_id"):
        return

    done = threading.Event()
    sync = make_company_sync_callback(args.db, [int(c["id"]) for c in targets])

    def _on_complete(job):
        try:
            sync(job)
        finally:
            print(f"Job {job.id} {job.status}")
            done.set()

    poller = ScrapeJobPoller(
        LocalJobChecker(args.db, gateway),
        interval_seconds=settings.poller_interval_seconds,
        max_workers=settings.poller_max_workers,
    )
    poller.add_job(response["job_id"], "company", urls, on_complete=_on_complete)
    timeout = settings.poll_max_attempts * settings.poll_interval_ms / 1000
    if not _wait_for(poller, done, timeout):
        print(f"Job {response['job_id']} still pending; check it later with: check {response['job_id']}")


def cmd_watch(args):
    settings = get_settings()
    checker = HttpJobChecker(args.api, token=args.token or settings.api_token, timeout=settings.http_timeout_seconds)
    remaining = set(args.job_id)
    lock = threading.Lock()
    done = threading.Event()

    def _on_complete(job):
        print(f"Job {job.id} {job.status}" + (f": {job.error}" if job.error else ""))
        with lock:
            remaining.discard(job.id)
            if not remaining:
                done.set()

    poller = ScrapeJobPoller(
        checker,
        interval_seconds=args.interval or settings.poller_interval_seconds,
        max_workers=settings.poller_max_workers,
        on_complete=_on_complete,
    )
    for job_id in args.job_id:
        poller.add_job(job_id, args.type, [])
    _wait_for(poller, done, args.timeout)
    _print_json({"jobs": [j.to_dict() for j in poller.jobs()], "pending_count": poller.pending_count})


def cmd_serve(args):
    import uvicorn
    from api.app import create_app

    settings = get_settings()
    uvicorn.run(create_app(settings), host=args.host or settings.api_host, port=args.port or settings.api_port)


def main(argv=None):
    settings = get_settings()
    init_logging(settings.log_level)
    parser = argparse.ArgumentParser(description="LinkedIn CRM sync CLI")
    parser.add_argument("--db", default=settings.db_path, help="Path to SQLite DB (default from settings)")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_boot = sub.add_parser("bootstrap", help="Create tables and indexes")
    p_boot.set_defaults(func=cmd_bootstrap)

    p_trg = sub.add_parser("trigger", help="Start a background scrape job and print its id")
    p_trg.add_argument("--type", choices=["profile", "company"], default="profile")
    p_trg.add_argument("--url", action="append", required=True, help="LinkedIn URL (repeatable)")
    p_trg.set_defaults(func=cmd_trigger)

    p_chk = sub.add_parser("check", help="Check a scrape job once")
    p_chk.add_argument("job_id")
    p_chk.set_defaults(func=cmd_check)

    p_jobs = sub.add_parser("jobs", help="List recent scrape jobs")
    p_jobs.add_argument("--status", choices=["pending", "processing", "completed", "failed"], default=None)
    p_jobs.add_argument("--limit", type=int, default=50)
    p_jobs.set_defaults(func=cmd_jobs)

    p_scr = sub.add_parser("scrape", help="Scrape and wait for the result (small fetches)")
    p_scr.add_argument("--type", choices=["profile", "company"], default="profile")
    p_scr.add_argument("--url", action="append", required=True, help="LinkedIn URL (repeatable)")
    p_scr.set_defaults(func=cmd_scrape)

    for name, func, what in (
        ("import-profiles", cmd_import_profiles, "people and their positions"),
        ("import-companies", cmd_import_companies, "companies"),
    ):
        p_imp = sub.add_parser(name, help=f"Scrape LinkedIn pages and import {what}")
        p_imp.add_argument("--input", help="Text file with LinkedIn URLs (one per line or comma separated)")
        p_imp.add_argument("--url", action="append", default=None, help="LinkedIn URL (repeatable)")
        p_imp.add_argument("--output", help="Write outcomes as JSON to this path")
        p_imp.add_argument("--progress", action="store_true", help="Print progress for each record")
        p_imp.set_defaults(func=func)

    p_sync = sub.add_parser("sync-companies", help="Refresh logo/website of companies from LinkedIn")
    p_sync.add_argument("--company-id", type=int, action="append", default=None,
                        help="Company id (repeatable). Default: companies with a LinkedIn URL but no logo")
    p_sync.set_defaults(func=cmd_sync_companies)

    p_watch = sub.add_parser("watch", help="Poll jobs through a running server until they finish")
    p_watch.add_argument("job_id", nargs="+")
    p_watch.add_argument("--api", default=f"http://{settings.api_host}:{settings.api_port}", help="Server base URL")
    p_watch.add_argument("--token", default=None, help="Bearer token (default: APP_API_TOKEN)")
    p_watch.add_argument("--type", choices=["profile", "company"], default="profile")
    p_watch.add_argument("--interval", type=float, default=None, help="Seconds between checks")
    p_watch.add_argument("--timeout", type=float, default=600.0, help="Give up after this many seconds")
    p_watch.set_defaults(func=cmd_watch)

    p_srv = sub.add_parser("serve", help="Run the HTTP API")
    p_srv.add_argument("--host", default=None)
    p_srv.add_argument("--port", type=int, default=None)
    p_srv.set_defaults(func=cmd_serve)

    args = parser.parse_args(argv)
    try:
        args.func(args)
    except (InvalidInputError, JobNotFoundError, ScrapeError) as e:
        message = e.message if isinstance(e, ScrapeError) else str(e)
        logger.error(message, extra={"step": args.cmd, "status": "error"})
        print(f"Error: {message}")
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
