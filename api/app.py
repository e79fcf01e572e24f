"""LinkedIn CRM sync: FastAPI backend."""
from __future__ import annotations

import logging
import sqlite3
from contextlib import asynccontextmanager, closing
from typing import Any, Dict, Iterator, Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from config.settings import Settings, get_settings
from db.connection import get_connection
from db.repos.companies_repo import CompaniesRepo
from db.repos.jobs_repo import JobsRepo
from db.schema import bootstrap
from models.scrape_job import CompanySyncRequest, ImportRequest, TriggerRequest
from pipelines.import_scraped import import_companies, import_profiles, make_company_sync_callback
from ports.gateway import ScrapeGatewayPort
from services.brightdata_client import BrightDataClient
from services.errors import InvalidInputError, JobNotFoundError, ScrapeError
from services.job_poller import LocalJobChecker, ScrapeJobPoller
from services.reporting import summarize_outcomes
from services.scrape_jobs import ScrapeJobController, build_import_urls
from utils.logging_setup import init_logging
from utils.scheduler import TaskFactory


logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    gateway: Optional[ScrapeGatewayPort] = None,
    poller: Optional[ScrapeJobPoller] = None,
    task_factory: Optional[TaskFactory] = None,
) -> FastAPI:
    settings = settings or get_settings()
    gateway = gateway or BrightDataClient(settings)
    if poller is None:
        poller = ScrapeJobPoller(
            LocalJobChecker(settings.db_path, gateway),
            interval_seconds=settings.poller_interval_seconds,
            task_factory=task_factory,
            max_workers=settings.poller_max_workers,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        init_logging(settings.log_level)
        with closing(get_connection(settings.db_path)) as conn:
            bootstrap(conn)
        poller.start()
        try:
            yield
        finally:
            poller.stop()

    app = FastAPI(title="LinkedIn CRM Sync", lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.poller = poller

    # -----------------------------------------------------------------------
    # Auth and error mapping
    # -----------------------------------------------------------------------
    @app.middleware("http")
    async def require_token(request: Request, call_next):
        if settings.api_token and request.headers.get("authorization") != f"Bearer {settings.api_token}":
            return JSONResponse({"error": "Unauthorized"}, 401)
        return await call_next(request)

    @app.exception_handler(InvalidInputError)
    async def _invalid_input(request: Request, exc: InvalidInputError):
        return JSONResponse({"error": str(exc)}, 400)

    @app.exception_handler(JobNotFoundError)
    async def _job_not_found(request: Request, exc: JobNotFoundError):
        return JSONResponse({"error": str(exc)}, 404)

    @app.exception_handler(ScrapeError)
    async def _scrape_error(request: Request, exc: ScrapeError):
        logger.error(exc.message, extra={"step": "api", "status": "error", "error": type(exc).__name__})
        return JSONResponse({"error": exc.message}, 500)

    # -----------------------------------------------------------------------
    # Dependencies
    # -----------------------------------------------------------------------
    def get_db() -> Iterator[sqlite3.Connection]:
        conn = get_connection(settings.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def get_controller(conn: sqlite3.Connection = Depends(get_db)) -> ScrapeJobController:
        return ScrapeJobController(JobsRepo(conn), gateway, settings)

    def tracked_listing() -> Dict[str, Any]:
        return {"jobs": [j.to_dict() for j in poller.jobs()], "pending_count": poller.pending_count}

    # -----------------------------------------------------------------------
    # Routes: scrape jobs
    # -----------------------------------------------------------------------
    @app.post("/api/scrape-linkedin/trigger")
    def trigger_scrape(body: TriggerRequest, controller: ScrapeJobController = Depends(get_controller)):
        return controller.trigger(body)

    @app.get("/api/scrape-linkedin/check/{job_id}")
    def check_scrape(job_id: str, controller: ScrapeJobController = Depends(get_controller)):
        return controller.check(job_id)

    @app.get("/api/scrape-linkedin/jobs")
    def list_scrapes(
        status: Optional[str] = Query(None),
        controller: ScrapeJobController = Depends(get_controller),
    ):
        return controller.list_jobs(status=status)

    @app.post("/api/scrape-linkedin")
    def scrape_now(body: TriggerRequest, controller: ScrapeJobController = Depends(get_controller)):
        return controller.scrape(body)

    # -----------------------------------------------------------------------
    # Routes: imports
    # -----------------------------------------------------------------------
    def _scrape_for_import(kind: str, body: ImportRequest, controller: ScrapeJobController) -> list:
        urls = build_import_urls(kind, body.urls, body.text, cap=settings.max_batch_urls)
        return controller.scrape(TriggerRequest(urls=urls, type=kind))["data"]

    @app.post("/api/import/linkedin-profiles")
    def import_linkedin_profiles(
        body: ImportRequest,
        conn: sqlite3.Connection = Depends(get_db),
        controller: ScrapeJobController = Depends(get_controller),
    ):
        records = _scrape_for_import("profile", body, controller)
        ctx = import_profiles(conn, records)
        outcomes = ctx.settled_outcomes()
        return {
            "outcomes": [o.model_dump() for o in outcomes],
            "summary": summarize_outcomes("profile", outcomes),
            "discovered_companies": ctx.meta.get("discovered_companies", []),
        }

    @app.post("/api/import/linkedin-companies")
    def import_linkedin_companies(
        body: ImportRequest,
        conn: sqlite3.Connection = Depends(get_db),
        controller: ScrapeJobController = Depends(get_controller),
    ):
        records = _scrape_for_import("company", body, controller)
        ctx = import_companies(conn, records)
        outcomes = ctx.settled_outcomes()
        return {
            "outcomes": [o.model_dump() for o in outcomes],
            "summary": summarize_outcomes("company", outcomes),
        }

    @app.post("/api/companies/linkedin-sync")
    def sync_companies_from_linkedin(
        body: CompanySyncRequest,
        conn: sqlite3.Connection = Depends(get_db),
        controller: ScrapeJobController = Depends(get_controller),
    ):
        repo = CompaniesRepo(conn)
        selected = repo.list_by_ids(body.company_ids) if body.company_ids else repo.list_needing_update()
        targets = [c for c in selected if c.get("linkedin_url")]
        if not targets:
            raise InvalidInputError("No companies with LinkedIn URLs selected")

        urls = [c["linkedin_url"] for c in targets]
        response = controller.trigger(TriggerRequest(urls=urls, type="company"))
        company_ids = [int(c["id"]) for c in targets]
        if response.get("job_id"):
            poller.add_job(
                response["job_id"],
                "company",
                urls,
                on_complete=make_company_sync_callback(settings.db_path, company_ids),
            )
        return {**response, "company_ids": company_ids, "tracked": bool(response.get("job_id"))}

    # -----------------------------------------------------------------------
    # Routes: poller registry
    # -----------------------------------------------------------------------
    @app.get("/api/scrape-jobs/tracked")
    def tracked_jobs():
        return tracked_listing()

    @app.post("/api/scrape-jobs/tracked/refresh")
    def refresh_tracked_jobs():
        poller.refresh()
        return tracked_listing()

    @app.delete("/api/scrape-jobs/tracked/{job_id}")
    def untrack_job(job_id: str):
        if not poller.remove_job(job_id):
            return JSONResponse({"error": "Job not tracked"}, 404)
        return {"removed": job_id}

    return app
