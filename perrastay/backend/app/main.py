# backend/app/main.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, sessionmaker

from .clock import Clock
from .config import Settings, settings as default_settings
from .db import make_engine, make_session_factory
from .domain.errors import DomainError, InternalError
from .logging_config import configure_logging
from .middleware.csrf import CSRFMiddleware
from .middleware.request_id import RequestIDMiddleware
from .middleware.structured_logging import StructuredLoggingMiddleware
from .routers.auth import router as auth_router
from .routers.bookings import router as bookings_router
from .routers.listings import router as listings_router
from .routers.meta import router as meta_router
from .services.mailer import Mailer, build_mailer

API_PREFIX = "/api"

log = logging.getLogger(__name__)


def _cors_origins(cfg: Settings) -> list[str]:
    val = cfg.cors_allow_origins
    if isinstance(val, str):
        v = val.strip()
        return ["*"] if v == "*" else [x.strip() for x in v.split(",") if x.strip()]
    if isinstance(val, list) and val:
        return val
    return ["*"]


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload(), headers=exc.headers())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(x) for x in first.get("loc", ()) if x not in ("body", "query", "path")]
    field = ".".join(loc) or "request"
    reason = str(first.get("msg") or "is invalid")
    return JSONResponse(
        status_code=400,
        content={"code": "VALIDATION_ERROR", "message": f"{field}: {reason}", "details": {"field": field, "reason": reason}},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("unhandled error", extra={"event": "unhandled_error", "route": request.url.path})
    err = InternalError()
    return JSONResponse(status_code=err.status_code, content=err.to_payload())


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_factory: Optional[sessionmaker[Session]] = None,
    clock: Optional[Clock] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """
    Build the API with its collaborators.

    Everything stateful hangs off app.state so tests can inject an
    in-memory database, a frozen clock and a recording mailer.
    """
    cfg = settings or default_settings

    app = FastAPI(title=f"{cfg.app_name} API", version=cfg.app_version)

    app.state.settings = cfg
    app.state.session_factory = session_factory or make_session_factory(make_engine(cfg.database_url))
    app.state.clock = clock or Clock()
    app.state.mailer = mailer or build_mailer(cfg)

    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # last added runs first: CORS -> request id -> request log -> CSRF
    app.add_middleware(CSRFMiddleware, cfg=cfg)
    app.add_middleware(StructuredLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(cfg),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(meta_router, prefix=API_PREFIX)
    app.include_router(auth_router, prefix=API_PREFIX)
    app.include_router(listings_router, prefix=API_PREFIX)
    app.include_router(bookings_router, prefix=API_PREFIX)

    return app


configure_logging(default_settings)
app = create_app()
