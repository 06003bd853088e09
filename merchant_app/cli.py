# merchant_app/cli.py
"""
Maintenance commands.

    merchant-app create-tables
    merchant-app sync-catalog --shop my-shop.myshopify.com
    merchant-app check-inventory --shop my-shop.myshopify.com
    merchant-app store-value --shop my-shop.myshopify.com
    merchant-app enqueue-inventory-checks
    merchant-app run-worker
"""
import asyncio
import logging
import signal

import click

from merchant_app.core.config import get_settings
from merchant_app.core.logging_config import configure_logging
from merchant_app.database import Base, async_session, engine
from merchant_app.services.catalog_sync import sync_products
from merchant_app.services.session_resolver import SessionResolver
from merchant_app.services.tasks import run_inventory_check, run_store_value

logger = logging.getLogger(__name__)


def _default_shop(shop):
    shop = shop or get_settings().DEFAULT_SHOP
    if not shop:
        raise click.UsageError("Pass --shop or set DEFAULT_SHOP")
    return shop


@click.group()
def cli():
    """Merchant app maintenance commands"""
    configure_logging()


@cli.command("create-tables")
def create_tables():
    """Create all database tables directly using SQLAlchemy"""
    import merchant_app.models  # noqa: F401  registers every model on Base

    async def _create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_tables())
    click.echo("All tables created successfully!")


@cli.command("sync-catalog")
@click.option("--shop", default=None, help="Shop domain (defaults to DEFAULT_SHOP)")
def sync_catalog(shop):
    """Mirror every Shopify product into the local products table"""
    shop = _default_shop(shop)

    async def _sync():
        async with async_session() as db:
            client = await SessionResolver(db).client_for(shop)
            return await sync_products(db, client)

    count = asyncio.run(_sync())
    click.echo(f"Synced {count} products for {shop}")


@cli.command("check-inventory")
@click.option("--shop", default=None, help="Shop domain (defaults to DEFAULT_SHOP)")
def check_inventory(shop):
    """Run the draft/active compliance scan in the foreground"""
    shop = _default_shop(shop)

    async def _check():
        async with async_session() as db:
            return await run_inventory_check(db, {"shop": shop})

    result = asyncio.run(_check())
    click.echo(
        f"Processed {result['items_processed']} items: "
        f"{len(result['drafted'])} drafted, {len(result['activated'])} activated, {len(result['errors'])} errors"
    )


@cli.command("store-value")
@click.option("--shop", default=None, help="Shop domain (defaults to DEFAULT_SHOP)")
def store_value(shop):
    """Calculate, save and email the store inventory value"""
    shop = _default_shop(shop)

    async def _value():
        async with async_session() as db:
            return await run_store_value(db, {"shop": shop})

    result = asyncio.run(_value())
    click.echo(f"Store value for {shop}: {result['value']:.2f} (emailed: {result['emailed']})")


@cli.command("enqueue-inventory-checks")
def enqueue_checks():
    """Queue one inventory_check job per installed shop"""
    from merchant_app.scheduler import enqueue_inventory_checks

    job_ids = asyncio.run(enqueue_inventory_checks())
    click.echo(f"Queued {len(job_ids)} inventory check job(s)")


@cli.command("run-worker")
@click.option("--poll-interval", type=float, default=None, help="Seconds between queue polls when idle")
def run_worker(poll_interval):
    """Run the job worker outside the web process until interrupted"""
    from merchant_app.worker import JobWorker

    async def _run():
        worker = JobWorker(poll_interval=poll_interval)
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)

        await worker.start()
        await stop.wait()
        logger.info("Shutdown requested, stopping worker")
        await worker.stop()

    asyncio.run(_run())


if __name__ == "__main__":
    cli()
