"""
Product intake endpoints. Requests are validated and scraped up front; the
Shopify writes happen in background jobs.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.enums import JobStatus, JobType
from merchant_app.core.exceptions import ScrapeError
from merchant_app.dependencies import get_db, get_shop_domain, read_body
from merchant_app.schemas.imports import ManualProductRequest, PSAImportRequest, TrollImportRequest
from merchant_app.services.job_queue import enqueue_job, list_jobs
from merchant_app.services.product_import import find_duplicate_products
from merchant_app.services.scraping.trolltoad import TrollToadScraper

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["imports"])

# Value of specific_product that skips the duplicate check and forces a new product
FORCE_NEW_PRODUCT = "NULL"


# ------------------------------------------------------------------
# Troll & Toad
# ------------------------------------------------------------------

@router.post("/troll/import")
async def troll_import(
    request: Request,
    shop: str = Depends(get_shop_domain),
    db: AsyncSession = Depends(get_db),
):
    try:
        form = TrollImportRequest.model_validate(await read_body(request))
    except PydanticValidationError as exc:
        logger.info("Rejected Troll & Toad import: %s", exc.errors())
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid form data", "itemsReturn": None, "duplicates": None},
        )

    url = str(form.url)
    scraper = TrollToadScraper()
    try:
        if form.collection:
            raw_items = await scraper.scrape_collection(url)
        else:
            raw_items = [await scraper.scrape_item(url, form.quantity, form.price, form.type.value)]
    except ScrapeError as exc:
        logger.error("Troll & Toad scrape failed for %s: %s", url, exc)
        raw_items = []

    items = [item for item in raw_items if item and item.name]
    if not items:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Unable to retrieve product details from Troll & Toad.",
                "itemsReturn": None,
                "duplicates": None,
            },
        )

    if not form.specific_product:
        duplicates = await find_duplicate_products(db, items[0].name)
        if duplicates:
            return {
                "error": None,
                "itemsReturn": None,
                "duplicates": [{"id": p.id, "title": p.title, "status": p.status} for p in duplicates],
            }

    existing_product_id = None
    if form.specific_product and form.specific_product != FORCE_NEW_PRODUCT:
        existing_product_id = form.specific_product

    job_ids = []
    for item in items:
        job = await enqueue_job(
            db,
            job_type=JobType.TROLL_IMPORT,
            payload={"shop": shop, "item": item.to_dict(), "existing_product_id": existing_product_id},
        )
        job_ids.append(job.id)
    await db.commit()

    logger.info("Queued %s Troll & Toad job(s) for %s", len(job_ids), shop)
    return {"error": None, "itemsReturn": job_ids, "duplicates": None}


@router.get("/troll/jobs")
async def troll_jobs(db: AsyncSession = Depends(get_db)):
    """Waiting and failed Troll & Toad jobs"""
    waiting = await list_jobs(db, JobType.TROLL_IMPORT, [JobStatus.QUEUED, JobStatus.RUNNING], limit=500)
    failed = await list_jobs(db, JobType.TROLL_IMPORT, [JobStatus.FAILED], limit=500)
    return {
        "waitingJobs": [job.payload for job in waiting],
        "failedJobs": [{"data": job.payload, "error": job.error_message} for job in failed],
    }


# ------------------------------------------------------------------
# PSA
# ------------------------------------------------------------------

@router.post("/psa/import")
async def psa_import(
    request: Request,
    shop: str = Depends(get_shop_domain),
    db: AsyncSession = Depends(get_db),
):
    body = await read_body(request)
    form = PSAImportRequest(certs=body.get("certs"), prices=body.get("prices"))
    certs = form.cert_list()
    prices = form.price_list()

    if not certs or len(certs) != len(prices):
        return JSONResponse(
            status_code=400,
            content={"error": "Certs and prices count do not match.", "jobsQueued": 0, "jobs": []},
        )

    pairs = [{"certNo": cert, "price": price} for cert, price in zip(certs, prices) if cert and price > 0]
    if not pairs:
        return JSONResponse(
            status_code=400,
            content={"error": "No valid cert/price pairs (prices must be > 0).", "jobsQueued": 0, "jobs": []},
        )

    for pair in pairs:
        await enqueue_job(
            db,
            job_type=JobType.PSA_IMPORT,
            payload={"shop": shop, "cert_number": pair["certNo"], "price": pair["price"]},
        )
    await db.commit()

    logger.info("Queued %s PSA job(s) for %s", len(pairs), shop)
    return {"error": None, "jobsQueued": len(pairs), "jobs": pairs}


# ------------------------------------------------------------------
# Manual
# ------------------------------------------------------------------

@router.post("/products/create-manual")
async def create_manual_product(
    request: Request,
    shop: str = Depends(get_shop_domain),
    db: AsyncSession = Depends(get_db),
):
    try:
        form = ManualProductRequest.model_validate(await read_body(request))
    except PydanticValidationError as exc:
        logger.info("Rejected manual product: %s", exc.errors())
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Title, price, and quantity are required"},
        )

    job = await enqueue_job(db, job_type=JobType.MANUAL_PRODUCT, payload=form.to_payload(shop))
    await db.commit()

    logger.info("Queued manual product %r as job %s (%s image(s))", form.title, job.id, len(form.images))
    return {"success": True, "jobId": job.id, "message": f"{form.title} queued for creation"}
