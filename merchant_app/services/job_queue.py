"""Helpers for enqueuing and managing background jobs."""

from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.enums import JobStatus, JobType
from merchant_app.core.utils import utcnow
from merchant_app.models.job import Job

# job type -> (retries after the first attempt, exponential backoff base in seconds)
RETRY_POLICIES: Dict[str, tuple] = {
    JobType.TROLL_IMPORT.value: (5, 2.0),
    JobType.PSA_IMPORT.value: (3, 2.0),
    JobType.MANUAL_PRODUCT.value: (0, 0.0),
    JobType.INVENTORY_CHECK.value: (0, 0.0),
    JobType.RESTOCK_EMAIL.value: (0, 0.0),
    JobType.STORE_VALUE.value: (0, 0.0),
}


def compute_backoff(attempts: int, base_seconds: float) -> float:
    """Delay before the next try after ``attempts`` failed tries: base * 2^(attempts-1)."""
    if attempts <= 0 or base_seconds <= 0:
        return 0.0
    return base_seconds * (2 ** (attempts - 1))


async def enqueue_job(
    db: AsyncSession,
    *,
    job_type: JobType,
    payload: Dict[str, Any],
    retries: Optional[int] = None,
    backoff_seconds: Optional[float] = None,
    run_after: Optional[datetime] = None,
) -> Job:
    """Create a queued job. Retry policy defaults come from RETRY_POLICIES."""
    job_type = JobType(job_type).value
    default_retries, default_backoff = RETRY_POLICIES.get(job_type, (0, 0.0))
    job = Job(
        job_type=job_type,
        payload=payload,
        status=JobStatus.QUEUED.value,
        attempts=0,
        max_attempts=1 + (default_retries if retries is None else retries),
        backoff_seconds=default_backoff if backoff_seconds is None else backoff_seconds,
        run_after=run_after or utcnow(),
    )
    db.add(job)
    await db.flush()
    await db.refresh(job)
    return job


async def fetch_next_due_job(db: AsyncSession, now: Optional[datetime] = None) -> Optional[Job]:
    """Fetch the oldest queued job whose run_after has passed (SKIP LOCKED)."""
    now = now or utcnow()
    stmt = (
        select(Job)
        .where(Job.status == JobStatus.QUEUED.value, Job.run_after <= now)
        .order_by(Job.run_after.asc(), Job.id.asc())
        .limit(1)
        .with_for_update(skip_locked=True)
    )
    result = await db.execute(stmt)
    return result.scalars().first()


async def mark_job_running(db: AsyncSession, job: Job) -> None:
    job.status = JobStatus.RUNNING.value
    job.last_attempt_at = utcnow()
    job.attempts += 1
    await db.flush()


async def mark_job_completed(db: AsyncSession, job: Job, result: Optional[Dict[str, Any]] = None) -> None:
    job.status = JobStatus.COMPLETED.value
    job.error_message = None
    job.result = result
    await db.flush()


async def mark_job_failed(db: AsyncSession, job: Job, error_message: str) -> bool:
    """
    Record a failed attempt. Returns True when the job was re-queued
    with exponential backoff, False when it has no attempts left.
    """
    job.error_message = (error_message or "")[:2000]
    if job.attempts < job.max_attempts:
        delay = compute_backoff(job.attempts, job.backoff_seconds)
        job.status = JobStatus.QUEUED.value
        job.run_after = utcnow() + timedelta(seconds=delay)
        await db.flush()
        return True

    job.status = JobStatus.FAILED.value
    await db.flush()
    return False


async def list_jobs(
    db: AsyncSession,
    job_type: JobType,
    statuses: Sequence[JobStatus],
    limit: int = 100,
) -> List[Job]:
    stmt = (
        select(Job)
        .where(
            Job.job_type == JobType(job_type).value,
            Job.status.in_([JobStatus(s).value for s in statuses]),
        )
        .order_by(Job.created_at.desc())
        .limit(limit)
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def peek_queue_count(db: AsyncSession) -> int:
    """Check how many jobs are still queued (without locking)."""
    stmt = select(func.count(Job.id)).where(Job.status == JobStatus.QUEUED.value)
    result = await db.execute(stmt)
    return result.scalar() or 0


async def requeue_stale_running(db: AsyncSession) -> int:
    """Put jobs left RUNNING by a crashed worker back on the queue."""
    result = await db.execute(select(Job).where(Job.status == JobStatus.RUNNING.value))
    jobs = list(result.scalars().all())
    for job in jobs:
        job.status = JobStatus.QUEUED.value
        job.run_after = utcnow()
    await db.flush()
    return len(jobs)
