from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import select

from merchant_app.models.job import Job
from merchant_app.models.session import ShopSession
from merchant_app.scheduler import INVENTORY_JOB_ID, InventoryScheduler, enqueue_inventory_checks
from merchant_app.services.session_resolver import SessionResolver

OTHER_SHOP = "other-shop.myshopify.com"


@pytest.fixture
async def two_shops(db_session, shop_session):
    db_session.add(ShopSession(
        id=f"offline_{OTHER_SHOP}",
        shop=OTHER_SHOP,
        state="offline",
        is_online=False,
        scope="read_products",
        access_token="shpat_other",
    ))
    await db_session.commit()
    return [shop_session.shop, OTHER_SHOP]


@pytest.mark.asyncio
async def test_enqueues_one_inventory_job_per_shop(db_session, two_shops, mocker):
    client = MagicMock()
    client.get_primary_location_id = AsyncMock(side_effect=["gid://shopify/Location/1", "gid://shopify/Location/2"])
    mocker.patch.object(SessionResolver, "client_for", AsyncMock(return_value=client))

    job_ids = await enqueue_inventory_checks()

    assert len(job_ids) == 2
    jobs = (await db_session.execute(select(Job).order_by(Job.id))).scalars().all()
    assert [j.job_type for j in jobs] == ["inventory_check", "inventory_check"]
    assert [j.payload for j in jobs] == [
        {"shop": OTHER_SHOP, "location_id": "gid://shopify/Location/1"},
        {"shop": "test-shop.myshopify.com", "location_id": "gid://shopify/Location/2"},
    ]


@pytest.mark.asyncio
async def test_shop_without_location_is_skipped(db_session, two_shops, mocker):
    client = MagicMock()
    client.get_primary_location_id = AsyncMock(side_effect=[None, "gid://shopify/Location/2"])
    mocker.patch.object(SessionResolver, "client_for", AsyncMock(return_value=client))

    job_ids = await enqueue_inventory_checks()

    assert len(job_ids) == 1


@pytest.mark.asyncio
async def test_one_failing_shop_does_not_stop_the_others(db_session, two_shops, mocker):
    client = MagicMock()
    client.get_primary_location_id = AsyncMock(
        side_effect=[RuntimeError("Shopify unreachable"), "gid://shopify/Location/2"]
    )
    mocker.patch.object(SessionResolver, "client_for", AsyncMock(return_value=client))

    job_ids = await enqueue_inventory_checks()

    assert len(job_ids) == 1


@pytest.mark.asyncio
async def test_scheduler_start_and_stop(settings):
    settings.INVENTORY_CHECK_INTERVAL_MINUTES = 60
    scheduler = InventoryScheduler(settings)

    assert scheduler.status() == {"status": "stopped", "jobs": []}

    scheduler.start()
    try:
        status = scheduler.status()
        assert status["status"] == "running"
        assert [job["id"] for job in status["jobs"]] == [INVENTORY_JOB_ID]
        job = scheduler.scheduler.get_job(INVENTORY_JOB_ID)
        assert job.max_instances == 1
        assert job.trigger.interval.total_seconds() == 3600
    finally:
        scheduler.stop()
