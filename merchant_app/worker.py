"""
In-process job worker.

The worker is an explicit object owned by the application: the lifespan
constructs it, calls ``start()`` and awaits ``stop()`` on shutdown. Jobs are
processed one at a time, each attempt bounded by the job type's max duration.
Failed attempts go back on the queue with exponential backoff until the job's
attempts are exhausted.
"""

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from merchant_app.core.config import get_settings
from merchant_app.database import async_session
from merchant_app.services.job_queue import (
    fetch_next_due_job,
    mark_job_completed,
    mark_job_failed,
    mark_job_running,
    peek_queue_count,
    requeue_stale_running,
)
from merchant_app.services.tasks import MAX_DURATIONS, TASK_HANDLERS, TaskHandler

logger = logging.getLogger(__name__)

DEFAULT_MAX_DURATION = 300.0


class JobWorker:
    def __init__(
        self,
        session_factory=async_session,
        handlers: Optional[Mapping[str, TaskHandler]] = None,
        poll_interval: Optional[float] = None,
        max_durations: Optional[Mapping[str, float]] = None,
    ):
        self.session_factory = session_factory
        self.handlers = dict(handlers if handlers is not None else TASK_HANDLERS)
        self.poll_interval = poll_interval if poll_interval is not None else get_settings().JOB_WORKER_POLL_INTERVAL
        self.max_durations = dict(max_durations if max_durations is not None else MAX_DURATIONS)
        self.current_job_id: Optional[int] = None
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event = asyncio.Event()

        async with self.session_factory() as session:
            requeued = await requeue_stale_running(session)
            await session.commit()
        if requeued:
            logger.warning("Re-queued %s job(s) left running by a previous worker", requeued)

        self._task = asyncio.create_task(self._run(), name="job-worker")
        logger.info("Job worker started (poll=%ss)", self.poll_interval)

    async def stop(self, timeout: float = 10.0) -> None:
        if self._task is None:
            return
        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Job %s still running at shutdown; cancelling worker", self.current_job_id)
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Job worker stopped")

    async def status(self) -> Dict[str, Any]:
        async with self.session_factory() as session:
            queued = await peek_queue_count(session)
        return {"running": self.running, "current_job_id": self.current_job_id, "queued": queued}

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            try:
                processed = await self.run_once()
            except Exception:
                logger.exception("Job worker loop error")
                processed = False

            if not processed:
                try:
                    await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass

    async def run_once(self) -> bool:
        """Claim and run the next due job. Returns False when the queue is idle."""
        async with self.session_factory() as session:
            job = await fetch_next_due_job(session)
            if not job:
                await session.rollback()
                return False

            job_id, job_type, payload = job.id, job.job_type, dict(job.payload or {})
            try:
                await mark_job_running(session, job)
                await session.commit()
            except Exception as exc:
                await session.rollback()
                logger.error("Failed to mark job %s as running: %s", job_id, exc)
                return True

            self.current_job_id = job_id
            logger.info("Processing job %s (%s), attempt %s/%s", job_id, job_type, job.attempts, job.max_attempts)

            try:
                result = await self._execute(job_type, payload)
            except Exception as exc:
                # The handler ran in its own session; this one only holds the job row
                error_message = str(exc) or exc.__class__.__name__
                try:
                    requeued = await mark_job_failed(session, job, error_message)
                    await session.commit()
                except Exception as inner_exc:
                    await session.rollback()
                    logger.exception("Failed to record failure for job %s (%s): %s", job_id, job_type, inner_exc)
                else:
                    if requeued:
                        logger.warning("Job %s failed, retrying after %s: %s", job_id, job.run_after, error_message)
                    else:
                        logger.error("Job %s (%s) failed permanently: %s", job_id, job_type, error_message)
            else:
                await mark_job_completed(session, job, result)
                await session.commit()
                logger.info("Job %s (%s) completed", job_id, job_type)
            finally:
                self.current_job_id = None

        return True

    async def _execute(self, job_type: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        handler = self.handlers.get(job_type)
        if handler is None:
            raise ValueError(f"No handler registered for job type {job_type}")

        max_duration = self.max_durations.get(job_type, DEFAULT_MAX_DURATION)
        async with self.session_factory() as task_session:
            try:
                return await asyncio.wait_for(handler(task_session, payload), timeout=max_duration)
            except asyncio.TimeoutError:
                raise TimeoutError(f"Job exceeded max duration of {max_duration}s")
