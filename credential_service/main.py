"""FastAPI application wiring for the credential service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from psycopg_pool import ConnectionPool

from .api.routes import router as auth_router
from .config import configure_logging, get_settings
from .delivery import LoggingResetTokenDelivery
from .domain.errors import MISSING_FIELDS, ErrorKind
from .domain.service import AccountService
from .metrics import record_outcome
from .repository import AccountRepository
from .security.passwords import BcryptPasswordHasher

settings = get_settings()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the Postgres pool and build the account service for the app lifecycle.

    A pool that cannot connect within the configured timeout aborts startup.
    """
    pool = ConnectionPool(settings.database_url, open=False)
    pool.open(wait=True, timeout=settings.store_connect_timeout_seconds)
    logger.info("connected to account store")
    try:
        repository = AccountRepository(pool)
        repository.ensure_schema()
        app.state.pool = pool
        app.state.account_service = AccountService(
            repository,
            BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
            LoggingResetTokenDelivery(settings.public_base_url),
            reset_token_ttl_seconds=settings.reset_token_ttl_seconds,
            reset_token_bytes=settings.reset_token_bytes,
        )
        yield
    finally:
        pool.close()


app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 validation failures."""
    endpoint = request.scope.get("endpoint")
    record_outcome(getattr(endpoint, "__name__", request.url.path), ErrorKind.validation.value)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": MISSING_FIELDS})


app.add_exception_handler(RequestValidationError, request_validation_handler)


@app.get("/", response_class=PlainTextResponse, tags=["health"])
def root() -> str:
    return "Server is running"


@app.get("/healthz", tags=["health"])
def healthz() -> dict[str, str]:
    """Return a minimal readiness indicator used by orchestration systems."""
    return {"status": "ok"}


@app.get("/metrics", tags=["health"])
def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


app.include_router(auth_router)
