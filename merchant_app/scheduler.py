"""
Scheduled tasks for the merchant app.

Every INVENTORY_CHECK_INTERVAL_MINUTES the scheduler enqueues one
inventory_check job per installed shop; the job worker does the scan.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from merchant_app.core.config import Settings, get_settings
from merchant_app.core.enums import JobType
from merchant_app.database import async_session
from merchant_app.services.job_queue import enqueue_job
from merchant_app.services.session_resolver import SessionResolver

logger = logging.getLogger(__name__)

INVENTORY_JOB_ID = "inventory_check"


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error("Job %s crashed: %s", event.job_id, event.exception)
    else:
        logger.info("Job %s executed successfully at %s", event.job_id, datetime.now())


async def enqueue_inventory_checks(session_factory=async_session) -> List[int]:
    """Enqueue an inventory_check job for every shop with a stored session."""
    job_ids: List[int] = []
    async with session_factory() as db:
        resolver = SessionResolver(db)
        shops = await resolver.list_shops()
        logger.info("=== SCHEDULED INVENTORY CHECK: %s shop(s) ===", len(shops))

        for shop in shops:
            try:
                client = await resolver.client_for(shop)
                location_id = await client.get_primary_location_id()
                if not location_id:
                    logger.warning("No location found for %s; skipping inventory check", shop)
                    continue
                job = await enqueue_job(
                    db,
                    job_type=JobType.INVENTORY_CHECK,
                    payload={"shop": shop, "location_id": location_id},
                )
                await db.commit()
                job_ids.append(job.id)
                logger.info("Queued inventory check job %s for %s", job.id, shop)
            except Exception as exc:
                await db.rollback()
                logger.exception("Could not queue inventory check for %s: %s", shop, exc)

    return job_ids


class InventoryScheduler:
    def __init__(self, settings: Optional[Settings] = None, session_factory=async_session):
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.scheduler = AsyncIOScheduler()
        self.scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    async def run_inventory_checks(self) -> List[int]:
        return await enqueue_inventory_checks(self.session_factory)

    def start(self) -> None:
        if self.scheduler.running:
            return

        interval = self.settings.INVENTORY_CHECK_INTERVAL_MINUTES
        self.scheduler.add_job(
            self.run_inventory_checks,
            IntervalTrigger(minutes=interval),
            id=INVENTORY_JOB_ID,
            name="Inventory Compliance Check",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=600,
        )
        self.scheduler.start()
        logger.info("Scheduler started; inventory check every %s minute(s)", interval)

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped successfully")

    def status(self) -> Dict[str, Any]:
        jobs_info = []
        for job in self.scheduler.get_jobs():
            jobs_info.append({
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            })
        return {
            "status": "running" if self.scheduler.running else "stopped",
            "jobs": jobs_info,
        }
