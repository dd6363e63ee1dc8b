"""HTTP surface: the digest endpoint and the job-board proxy."""
from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional

import requests
from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from jobscout import __version__
from jobscout.auth import Caller, ServiceCaller, authenticate
from jobscout.broadcast import DigestSender
from jobscout.config import AppConfig, load_config
from jobscout.email_report import Mailer, build_mailer
from jobscout.errors import AuthRequired, PersistenceFailure, Unauthorized
from jobscout.log import get_logger
from jobscout.models import DigestRequest
from jobscout.sources.arbeitsagentur import ArbeitsagenturSource
from jobscout.store import MatchStore, utcnow

log = get_logger(__name__)


class DigestBody(BaseModel):
    email: Optional[str] = None
    threshold: Optional[float] = Field(None, ge=0, le=100)
    test: bool = False
    check: bool = False
    user_id: Optional[str] = None


class FetchJobsBody(BaseModel):
    keywords: str = ""
    location: str = "Remote"


def create_app(
    config: AppConfig | None = None,
    store: MatchStore | None = None,
    mailer: Mailer | None = None,
    job_board: ArbeitsagenturSource | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    config = config or load_config()
    store = store or MatchStore(config.db_path)
    if mailer is None:
        mailer = build_mailer(config)
    job_board = job_board or ArbeitsagenturSource(
        config.arbeitsagentur_api_key, timeout=config.source_timeout_seconds
    )
    sender = DigestSender(store, mailer, config, clock=clock)

    app = FastAPI(title="JobScout API", version=__version__)

    @app.exception_handler(AuthRequired)
    @app.exception_handler(Unauthorized)
    async def auth_error(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=401, content={"error": str(exc)})

    @app.exception_handler(PersistenceFailure)
    async def persistence_error(request: Request, exc: PersistenceFailure) -> JSONResponse:
        log.error("Persistence failure on %s: %s", request.url.path, exc)
        return JSONResponse(status_code=500, content={"error": "Database error", "details": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = [e.get("msg", "") for e in exc.errors()]
        return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": details})

    @app.exception_handler(Exception)
    async def unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        log.exception("Unhandled error on %s", request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # resolved before the body is validated
    def require_caller(authorization: Optional[str] = Header(None)) -> Caller:
        return authenticate(authorization, config)

    @app.post("/send-digest")
    def send_digest(
        body: Optional[DigestBody] = None,
        caller: Caller = Depends(require_caller),
    ):
        body = body or DigestBody()
        request = DigestRequest(
            email=body.email, threshold=body.threshold, test=body.test, check=body.check
        )

        if isinstance(caller, ServiceCaller):
            if not body.user_id:
                log.info("Digest broadcast started by service caller (check=%s)", body.check)
                outcomes = sender.broadcast_all(diagnostic=body.check)
                return {"processed": len(outcomes), "results": [o.to_dict() for o in outcomes]}
            log.info("Digest for %s started by service caller", body.user_id)
            outcome = sender.send_for_user(body.user_id, request)
        else:
            log.info("Digest preview started by %s", caller.user_id)
            store.ensure_settings(caller.user_id, caller.email)
            request.test = True
            outcome = sender.send_for_user(caller.user_id, request, account_email=caller.email)

        return JSONResponse(status_code=outcome.http_status, content=outcome.data)

    @app.post("/fetch-jobs")
    def fetch_jobs(body: Optional[FetchJobsBody] = None):
        body = body or FetchJobsBody()
        keywords = body.keywords.strip()
        if not keywords:
            return JSONResponse(status_code=400, content={"error": "keywords is required"})
        location = body.location.strip() or "Remote"
        try:
            jobs = job_board.search(keywords, location)
        except requests.HTTPError as exc:
            status = exc.response.status_code if exc.response is not None else "error"
            log.warning("Arbeitsagentur API error: %s", status)
            return {"jobs": [], "source": job_board.tag, "error": f"API {status}"}
        except (requests.RequestException, ValueError) as exc:
            log.warning("Arbeitsagentur request failed: %s", exc)
            return {"jobs": [], "source": job_board.tag, "error": str(exc)}
        log.info("Returned %d Arbeitsagentur jobs", len(jobs))
        return {"jobs": [job.to_dict() for job in jobs]}

    return app
