"""
Restaurant POS order service.

Checkout, table occupancy, kitchen tickets, settlement and the daily
dashboard for a single restaurant.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import subprocess
import os

from pos_core import ServiceHealth, setup_logging, RequestLoggingMiddleware, get_logger
from pos_service.api.admin_routes import customers_router, settings_router
from pos_service.api.deps import get_notifier
from pos_service.api.menu_routes import categories_router, menu_router
from pos_service.api.routes import router as orders_router, tables_router
from pos_service.application.settings_service import SettingsService
from pos_service.core_settings import get_settings
from pos_service.errors import AppError
from pos_service.infrastructure.db import SessionLocal, engine, init_models

SERVICE_NAME = "pos-service"
SERVICE_DESCRIPTION = "Restaurant point-of-sale order service"

settings = get_settings()
SERVICE_VERSION = settings.SERVICE_VERSION
PROJECT_ROOT = os.path.join(os.path.dirname(__file__), "..")

setup_logging(service_name=SERVICE_NAME, level=settings.LOG_LEVEL)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {SERVICE_NAME} version {SERVICE_VERSION}")

    if settings.RUN_MIGRATIONS:
        try:
            logger.info("Running database migrations")
            result = subprocess.run(
                ["alembic", "upgrade", "head"],
                cwd=PROJECT_ROOT,
                capture_output=True,
                text=True,
                check=False
            )
            if result.returncode != 0:
                logger.warning(f"Migration output: {result.stderr}")
            else:
                logger.info("Database migrations completed")
        except Exception as e:
            logger.error(f"Migration error: {e}")

    try:
        init_models()
        db = SessionLocal()
        try:
            SettingsService(db).seed_defaults()
        finally:
            db.close()
        logger.info("Database models initialized")
    except Exception as e:
        logger.error(f"Failed to initialize database models: {e}")
        raise

    logger.info(f"{SERVICE_NAME} started successfully")

    yield

    logger.info(f"Shutting down {SERVICE_NAME}")
    notifier = get_notifier()
    if hasattr(notifier, "shutdown"):
        notifier.shutdown(wait=True)


app = FastAPI(
    title=SERVICE_NAME,
    description=SERVICE_DESCRIPTION,
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "code": "INTERNAL_ERROR"})


health_service = ServiceHealth(SERVICE_NAME, SERVICE_VERSION, engine=engine)
app.include_router(health_service.create_health_router())

app.include_router(orders_router)
app.include_router(tables_router)
app.include_router(categories_router)
app.include_router(menu_router)
app.include_router(settings_router)
app.include_router(customers_router)


@app.get("/")
async def root():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "status": "running",
        "docs": "/api/docs"
    }


@app.get("/info")
async def info():
    return {
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
        "description": SERVICE_DESCRIPTION,
        "environment": os.getenv("ENVIRONMENT", "development"),
        "endpoints": {
            "health": "/health",
            "ready": "/health/ready",
            "live": "/health/live",
            "metrics": "/metrics",
            "docs": "/api/docs",
            "orders": "/orders",
            "tables": "/tables",
            "dashboard": "/dashboard",
        }
    }
