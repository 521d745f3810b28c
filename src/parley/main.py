# src/parley/main.py
"""Main entry point for the Parley application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from parley.api.v1 import (
    auth_router,
    categories_router,
    feeds_router,
    posts_router,
    users_router,
)
from parley.core.settings import settings
from parley.services.jobs import JobWorker

logger = logging.getLogger(__name__)

APP_DESCRIPTION = "Forum posting API with category permissions and private messages"

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description=APP_DESCRIPTION,
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
app.include_router(auth_router, prefix="/api/v1")
app.include_router(posts_router, prefix="/api/v1")
app.include_router(feeds_router, prefix="/api/v1")
app.include_router(categories_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")


@app.on_event("startup")
async def on_startup() -> None:
    if settings.queue_jobs and settings.job_worker_enabled:
        worker = JobWorker()
        await worker.start()
        app.state.job_worker = worker
        logger.info("Started job worker (poll interval %ss)", settings.job_poll_interval_seconds)
    else:
        app.state.job_worker = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: JobWorker | None = getattr(app.state, "job_worker", None)
    if worker:
        await worker.stop()
        logger.info("Stopped job worker")


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
        "description": APP_DESCRIPTION,
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("parley.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
