"""FastAPI application entry point."""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from podtrack.api.config import config

logging.basicConfig(level=config.LOG_LEVEL)

from podtrack.api.db import ensure_tables
from podtrack.api.routes import engineers, health, notifications, pods, search, transactions, users
from podtrack.api.services.auth import auth_middleware
from podtrack.api.services.errors import EngineError, StoreFailure

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Ensure tables exist on startup (SQLite/dev only; Postgres is migrated by Alembic)."""
    ensure_tables()
    yield


app = FastAPI(
    title="PodTrack API",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Map domain errors to HTTP. Store failures were already logged with context in repo."""
    if isinstance(exc, StoreFailure):
        return JSONResponse(status_code=exc.status_code, content={"detail": StoreFailure.detail})
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed bodies and query values are InvalidPayload (400), rejected before the store is touched."""
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


# CORS: only configured origins (no wildcard). Default is localhost for local dev.
app.add_middleware(CORSMiddleware, allow_origins=config.CORS_ALLOW_ORIGINS, allow_methods=["*"], allow_headers=["*"])
app.middleware("http")(auth_middleware)

app.include_router(health.router, tags=["health"])
app.include_router(search.router, prefix="/search", tags=["search"])
app.include_router(engineers.router, tags=["engineers"])
app.include_router(pods.router, prefix="/pods", tags=["pods"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
app.include_router(notifications.router, prefix="/notifications", tags=["notifications"])

if (os.getenv("ENV") or os.getenv("ENVIRONMENT") or "").lower() == "test":
    from podtrack.api.routes import debug

    app.include_router(debug.router, prefix="/debug", tags=["debug"])
