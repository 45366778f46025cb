# app/main.py

import logging
import subprocess
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import models  # noqa: F401
from app.core.config import get_settings
from app.core.exceptions import BaseServiceError
from app.core.logging_config import configure_logging
from app.database import engine
from app.routes import delivery, health, inventory, notifications, orders, seller, websockets as websocket_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    if settings.RUN_MIGRATIONS:
        logger.info("Running database migrations...")
        result = subprocess.run(["alembic", "upgrade", "head"], capture_output=True, text=True)
        if result.returncode == 0:
            logger.info("Migrations completed successfully")
        else:
            logger.error(f"Migration failed: {result.stderr}")

    try:
        yield  # This is where the app runs
    finally:
        await engine.dispose()


app = FastAPI(
    title="Order Fulfillment Engine",
    lifespan=lifespan
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BaseServiceError)
async def service_error_handler(request: Request, exc: BaseServiceError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(orders.router)
app.include_router(inventory.router)
app.include_router(seller.router)
app.include_router(delivery.router)
app.include_router(notifications.router)
app.include_router(websocket_router.router)  # Sockets authenticate from the handshake
app.include_router(health.router)  # Health check should be accessible without auth
