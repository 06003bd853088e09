# merchant_app/main.py

import logging
import os
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from merchant_app import models  # noqa: F401
from merchant_app.core.config import get_settings
from merchant_app.core.exceptions import SessionNotFoundError, ShopifyServiceError, ValidationError
from merchant_app.core.logging_config import configure_logging
from merchant_app.core.security import require_auth
from merchant_app.routes import automation, health, imports, keywords, lots, notifications, products, webhooks, wishlist
from merchant_app.scheduler import InventoryScheduler
from merchant_app.worker import JobWorker

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    if os.getenv('RUN_MIGRATIONS', 'false').lower() == 'true':
        logger.info("Running database migrations...")
        result = subprocess.run(['alembic', 'upgrade', 'head'], capture_output=True, text=True)
        if result.returncode == 0:
            logger.info("Migrations completed successfully")
        else:
            logger.error("Migration failed: %s", result.stderr)

    app.state.job_worker = JobWorker()
    app.state.inventory_scheduler = InventoryScheduler(settings)

    if settings.JOB_WORKER_ENABLED:
        await app.state.job_worker.start()
    else:
        logger.info("Job worker is disabled. Set JOB_WORKER_ENABLED=true to enable")

    if settings.INVENTORY_SCHEDULE_ENABLED:
        app.state.inventory_scheduler.start()
    else:
        logger.info("Scheduled inventory check is disabled. Set INVENTORY_SCHEDULE_ENABLED=true to enable")

    try:
        yield
    finally:
        app.state.inventory_scheduler.stop()
        await app.state.job_worker.stop()


app = FastAPI(
    title="Merchant App",
    lifespan=lifespan
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": "Invalid request", "details": jsonable_errors(exc)})


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(SessionNotFoundError)
async def session_not_found_handler(request: Request, exc: SessionNotFoundError):
    return JSONResponse(status_code=401, content={"error": str(exc)})


@app.exception_handler(ShopifyServiceError)
async def shopify_error_handler(request: Request, exc: ShopifyServiceError):
    logger.error("Shopify error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"error": "Shopify request failed", "message": str(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error", "message": str(exc)})


def jsonable_errors(exc: RequestValidationError):
    return [{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in exc.errors()]


app.include_router(health.router)  # Health check and session purge carry their own guards
app.include_router(wishlist.router)  # Storefront extension, CORS only
app.include_router(webhooks.router)  # Webhooks are verified by HMAC instead of basic auth
app.include_router(notifications.router, dependencies=[require_auth()])
app.include_router(keywords.router, dependencies=[require_auth()])
app.include_router(automation.router, dependencies=[require_auth()])
app.include_router(imports.router, dependencies=[require_auth()])
app.include_router(products.router, dependencies=[require_auth()])
app.include_router(lots.router, dependencies=[require_auth()])
app.include_router(lots.convert_router, dependencies=[require_auth()])
