# src/threadvote/main.py
"""Main entry point for the threadvote application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from threadvote.api.v1 import comments_router, posts_router, users_router, votes_router
from threadvote.core.errors import EngineError
from threadvote.core.settings import settings
from threadvote.services.karma import KarmaWorker

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    """Set the root log level from LOG_LEVEL."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


configure_logging()

# Initialize FastAPI app
app = FastAPI(
    title="threadvote API",
    description="Voting, karma and threaded comments for discussion communities",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(votes_router, prefix="/api/v1")
app.include_router(posts_router, prefix="/api/v1")
app.include_router(comments_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError) -> JSONResponse:
    """Answer engine errors with their HTTP status and a stable error code."""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.on_event("startup")
async def on_startup() -> None:
    if settings.karma_recompute_mode == "background":
        worker = KarmaWorker()
        await worker.start()
        app.state.karma_worker = worker
    else:
        app.state.karma_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: KarmaWorker | None = getattr(app.state, "karma_worker", None)
    if worker:
        await worker.stop()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("threadvote.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
