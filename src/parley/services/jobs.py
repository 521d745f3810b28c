"""Background jobs for post processing.

Jobs run inline while `settings.queue_jobs` is off. When it is on, `enqueue`
persists a `QueuedJob` row and the `JobWorker` drains pending rows in the
background.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from parley.core.settings import settings
from parley.db.session import SessionLocal
from parley.models import Post, QueuedJob
from parley.models.job import JOB_STATUS_DONE, JOB_STATUS_FAILED, JOB_STATUS_PENDING
from parley.utils.text import cook

logger = logging.getLogger(__name__)

JobHandler = Callable[[Session, Mapping[str, Any]], None]

PROCESS_POST = "process_post"

_HANDLERS: dict[str, JobHandler] = {}


def register_job(name: str) -> Callable[[JobHandler], JobHandler]:
    """Register `handler` under `name` so it can be enqueued."""

    def decorator(handler: JobHandler) -> JobHandler:
        _HANDLERS[name] = handler
        return handler

    return decorator


def get_handler(name: str) -> JobHandler:
    try:
        return _HANDLERS[name]
    except KeyError as err:
        raise ValueError(f"Unknown job: {name}") from err


@register_job(PROCESS_POST)
def process_post(db: Session, args: Mapping[str, Any]) -> None:
    """Cook the post body and record client-reported image sizes."""
    post = db.get(Post, args["post_id"])
    if post is None:
        logger.warning("process_post: post %s no longer exists", args["post_id"])
        return

    post.cooked = cook(post.raw)
    image_sizes = args.get("image_sizes")
    if image_sizes:
        post.image_sizes = {str(key): str(value) for key, value in image_sizes.items()}


def enqueue(db: Session, name: str, args: Mapping[str, Any]) -> QueuedJob | None:
    """Queue a job, or run it immediately when queueing is disabled.

    Returns:
        The persisted job when queued, otherwise None.
    """
    handler = get_handler(name)
    payload = dict(args)

    if not settings.queue_jobs:
        handler(db, payload)
        db.commit()
        logger.debug("Ran job %s inline with %s", name, payload)
        return None

    job = QueuedJob(name=name, args=payload, status=JOB_STATUS_PENDING, attempts=0)
    db.add(job)
    db.commit()
    logger.debug("Queued job %s (id=%s)", name, job.id)
    return job


def run_pending_jobs(db: Session, limit: int | None = None) -> int:
    """Run up to `limit` pending jobs and return how many were attempted."""
    batch_size = limit if limit is not None else settings.job_batch_size
    pending = (
        db.query(QueuedJob)
        .filter(QueuedJob.status == JOB_STATUS_PENDING)
        .order_by(QueuedJob.id)
        .limit(batch_size)
        .all()
    )
    logger.debug("Found %d pending jobs", len(pending))

    for job in pending:
        job_id = job.id
        job.attempts += 1
        try:
            get_handler(job.name)(db, job.args)
        except Exception as e:
            # drop whatever the handler half-wrote, then count the attempt again
            db.rollback()
            job = db.get(QueuedJob, job_id)
            if job is None:  # pragma: no cover - row vanished mid-run
                continue
            job.attempts += 1
            _record_failure(job, e)
        else:
            job.status = JOB_STATUS_DONE
            job.last_error = None
        db.commit()

    return len(pending)


def _record_failure(job: QueuedJob, error: Exception) -> None:
    logger.error("Job %s (%s) failed: %s", job.id, job.name, error, exc_info=True)
    job.last_error = str(error)
    if job.attempts >= settings.job_max_attempts:
        job.status = JOB_STATUS_FAILED


class JobWorker:
    """Periodically drains pending jobs in a background task."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        """Initialize the worker.

        Args:
            session_factory: Optional session factory. Defaults to the app's SessionLocal.
        """
        self._session_factory = session_factory or SessionLocal
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background loop."""
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the background loop and wait for the current batch."""
        if self._task is None:
            return

        self._stopping.set()
        await self._task
        self._task = None

    async def run_once(self) -> int:
        """Drain a single batch; returns the number of jobs attempted."""
        return await asyncio.to_thread(self._drain)

    def _drain(self) -> int:
        with self._session_factory() as db:
            return run_pending_jobs(db)

    async def _run(self) -> None:
        interval = max(0.1, float(settings.job_poll_interval_seconds))

        while not self._stopping.is_set():
            try:
                await self.run_once()
            except SQLAlchemyError as e:
                logger.warning("JobWorker encountered database error: %s", e)
                await asyncio.sleep(min(interval * 4, 30.0))
                continue
            except Exception:
                logger.exception("JobWorker batch failed")
                await asyncio.sleep(min(interval * 4, 30.0))
                continue

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=interval)
            except TimeoutError:
                pass
