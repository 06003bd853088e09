"""
Background job handlers, keyed by job type.

Each handler receives a fresh database session and the job payload and
returns a JSON-serialisable result. Raising marks the attempt failed; the
queue decides whether it is retried.
"""

import logging
from typing import Any, Awaitable, Callable, Dict

from sqlalchemy.ext.asyncio import AsyncSession

from merchant_app.core.enums import JobType, NotificationType
from merchant_app.core.exceptions import JobError
from merchant_app.services.compliance import InventoryAutomationService
from merchant_app.services.email_service import get_email_service
from merchant_app.services.notification_service import NotificationService
from merchant_app.services.product_import import ProductImportService
from merchant_app.services.restock_notifier import RestockNotifier
from merchant_app.services.scraping.psa import PSACertScraper
from merchant_app.services.session_resolver import SessionResolver
from merchant_app.services.store_value import calculate_and_save

logger = logging.getLogger(__name__)

TaskHandler = Callable[[AsyncSession, Dict[str, Any]], Awaitable[Dict[str, Any]]]

# Seconds a single attempt may run before it is cancelled
MAX_DURATIONS: Dict[str, float] = {
    JobType.INVENTORY_CHECK.value: 300,
    JobType.TROLL_IMPORT.value: 300,
    JobType.PSA_IMPORT.value: 300,
    JobType.MANUAL_PRODUCT.value: 300,
    JobType.RESTOCK_EMAIL.value: 120,
    JobType.STORE_VALUE.value: 300,
}


def _require(payload: Dict[str, Any], *keys: str) -> None:
    missing = [key for key in keys if payload.get(key) in (None, "")]
    if missing:
        raise JobError(f"Job payload missing {', '.join(missing)}")


async def run_inventory_check(db: AsyncSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    _require(payload, "shop")
    client = await SessionResolver(db).client_for(payload["shop"])
    location_id = payload.get("location_id") or await client.get_primary_location_id()
    if not location_id:
        raise JobError(f"No location found for {payload['shop']}")
    return await InventoryAutomationService(db, client).check_all_products(location_id)


async def run_troll_import(db: AsyncSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    _require(payload, "shop", "item")
    try:
        client = await SessionResolver(db).client_for(payload["shop"])
        service = ProductImportService(db, client)
        return await service.import_troll_item(payload["item"], payload.get("existing_product_id"))
    except Exception as exc:
        await db.rollback()
        await NotificationService(db).record(f"Error uploading product: {exc}", NotificationType.TROLL)
        raise


async def run_psa_import(db: AsyncSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    _require(payload, "shop", "cert_number", "price")
    cert_number = str(payload["cert_number"])
    try:
        client = await SessionResolver(db).client_for(payload["shop"])
        card = await PSACertScraper().scrape(cert_number)
        return await ProductImportService(db, client).create_psa_product(card, float(payload["price"]))
    except Exception as exc:
        await db.rollback()
        await NotificationService(db).record(f"PSA {cert_number} failed: {exc}", NotificationType.PSA)
        raise


async def run_manual_product(db: AsyncSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    _require(payload, "shop", "title", "price")
    try:
        client = await SessionResolver(db).client_for(payload["shop"])
        result = await ProductImportService(db, client).create_manual_product(payload)
    except Exception as exc:
        await db.rollback()
        await NotificationService(db).record(f"Error creating {payload.get('title')}: {exc}", NotificationType.MANUAL)
        raise

    result["compliance"] = await InventoryAutomationService(db, client).ensure_product_compliance(
        product_id=result["product_id"]
    )
    return result


async def run_restock_email(db: AsyncSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    _require(payload, "product_id", "product_name")
    notifier = RestockNotifier(db, get_email_service())
    return await notifier.notify(
        product_id=payload["product_id"],
        product_name=payload["product_name"],
        quantity=int(payload.get("quantity") or 0),
        bypass=bool(payload.get("bypass")),
    )


async def run_store_value(db: AsyncSession, payload: Dict[str, Any]) -> Dict[str, Any]:
    _require(payload, "shop")
    client = await SessionResolver(db).client_for(payload["shop"])
    location_id = payload.get("location_id") or await client.get_primary_location_id()
    if not location_id:
        raise JobError(f"No location found for {payload['shop']}")
    return await calculate_and_save(db, client, location_id, get_email_service())


TASK_HANDLERS: Dict[str, TaskHandler] = {
    JobType.INVENTORY_CHECK.value: run_inventory_check,
    JobType.TROLL_IMPORT.value: run_troll_import,
    JobType.PSA_IMPORT.value: run_psa_import,
    JobType.MANUAL_PRODUCT.value: run_manual_product,
    JobType.RESTOCK_EMAIL.value: run_restock_email,
    JobType.STORE_VALUE.value: run_store_value,
}
