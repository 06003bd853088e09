from datetime import timedelta

import pytest

from merchant_app.core.enums import JobStatus, JobType
from merchant_app.core.utils import as_utc, utcnow
from merchant_app.models.job import Job
from merchant_app.services.job_queue import (
    compute_backoff,
    enqueue_job,
    fetch_next_due_job,
    list_jobs,
    mark_job_completed,
    mark_job_failed,
    mark_job_running,
    peek_queue_count,
    requeue_stale_running,
)


@pytest.mark.parametrize("attempts,base,expected", [
    (1, 2.0, 2.0),
    (2, 2.0, 4.0),
    (3, 2.0, 8.0),
    (5, 2.0, 32.0),
    (0, 2.0, 0.0),
    (3, 0.0, 0.0),
])
def test_compute_backoff(attempts, base, expected):
    assert compute_backoff(attempts, base) == expected


@pytest.mark.asyncio
async def test_enqueue_uses_retry_policy_per_type(db_session):
    troll = await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={"shop": "s"})
    psa = await enqueue_job(db_session, job_type=JobType.PSA_IMPORT, payload={"shop": "s"})
    inventory = await enqueue_job(db_session, job_type=JobType.INVENTORY_CHECK, payload={"shop": "s"})
    await db_session.commit()

    assert (troll.max_attempts, troll.backoff_seconds) == (6, 2.0)
    assert (psa.max_attempts, psa.backoff_seconds) == (4, 2.0)
    assert inventory.max_attempts == 1
    assert troll.status == JobStatus.QUEUED.value
    assert troll.attempts == 0


@pytest.mark.asyncio
async def test_enqueue_accepts_string_job_type_and_overrides(db_session):
    job = await enqueue_job(db_session, job_type="psa_import", payload={}, retries=1, backoff_seconds=10)

    assert job.job_type == "psa_import"
    assert job.max_attempts == 2
    assert job.backoff_seconds == 10


@pytest.mark.asyncio
async def test_fetch_next_due_job_is_fifo_and_skips_future_jobs(db_session):
    later = await enqueue_job(
        db_session, job_type=JobType.TROLL_IMPORT, payload={"n": 0}, run_after=utcnow() + timedelta(minutes=5)
    )
    first = await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={"n": 1})
    await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={"n": 2})
    await db_session.commit()

    job = await fetch_next_due_job(db_session)
    assert job.id == first.id

    await mark_job_running(db_session, job)
    nxt = await fetch_next_due_job(db_session)
    assert nxt.payload == {"n": 2}
    assert nxt.id != later.id


@pytest.mark.asyncio
async def test_failed_attempt_is_requeued_with_backoff(db_session):
    job = await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={})
    await mark_job_running(db_session, job)
    await mark_job_running(db_session, job)
    before = utcnow()

    requeued = await mark_job_failed(db_session, job, "Timeout fetching page")

    assert requeued is True
    assert job.status == JobStatus.QUEUED.value
    assert job.error_message == "Timeout fetching page"
    # Second attempt -> 2s * 2^1
    delay = (as_utc(job.run_after) - before).total_seconds()
    assert 3.5 <= delay <= 5


@pytest.mark.asyncio
async def test_job_fails_when_attempts_exhausted(db_session):
    job = await enqueue_job(db_session, job_type=JobType.PSA_IMPORT, payload={})
    for _ in range(4):
        await mark_job_running(db_session, job)
        requeued = await mark_job_failed(db_session, job, "cert page blocked")

    assert requeued is False
    assert job.status == JobStatus.FAILED.value
    assert job.attempts == 4


@pytest.mark.asyncio
async def test_mark_completed_clears_error(db_session):
    job = await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={})
    await mark_job_running(db_session, job)
    await mark_job_failed(db_session, job, "oops")
    await mark_job_running(db_session, job)

    await mark_job_completed(db_session, job, {"product_id": "gid://shopify/Product/9"})

    assert job.status == JobStatus.COMPLETED.value
    assert job.error_message is None
    assert job.result == {"product_id": "gid://shopify/Product/9"}


@pytest.mark.asyncio
async def test_requeue_stale_running_and_counts(db_session):
    stale = await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={})
    await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={})
    await mark_job_running(db_session, stale)
    await db_session.commit()

    assert await peek_queue_count(db_session) == 1
    assert await requeue_stale_running(db_session) == 1
    assert stale.status == JobStatus.QUEUED.value
    assert await peek_queue_count(db_session) == 2


@pytest.mark.asyncio
async def test_list_jobs_filters_by_type_and_status(db_session):
    queued = await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={"a": 1})
    failed = await enqueue_job(db_session, job_type=JobType.TROLL_IMPORT, payload={"a": 2})
    failed.status = JobStatus.FAILED.value
    await enqueue_job(db_session, job_type=JobType.PSA_IMPORT, payload={"a": 3})
    await db_session.commit()

    waiting = await list_jobs(db_session, JobType.TROLL_IMPORT, [JobStatus.QUEUED, JobStatus.RUNNING])
    failures = await list_jobs(db_session, JobType.TROLL_IMPORT, [JobStatus.FAILED])

    assert [j.id for j in waiting] == [queued.id]
    assert [j.id for j in failures] == [failed.id]
    assert all(isinstance(j, Job) for j in waiting + failures)
