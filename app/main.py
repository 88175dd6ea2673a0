# app/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.core.config import get_settings
from app.core.logging import setup_logging
from app.db.base import init_models
from app.db.session import close_engines
from app.http_problem_handlers import register_exception_handlers

settings = get_settings()
setup_logging(settings.LOG_LEVEL, json=settings.JSON_LOG)
logger = logging.getLogger("stockdesk")

init_models()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    logger.info("stockdesk starting (env=%s)", settings.ENV)
    yield
    await close_engines()


app = FastAPI(
    title="Stockdesk",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

register_exception_handlers(app)

from app.api.routers.health import router as health_router  # noqa: E402
from app.api.routers.inventory import router as inventory_router  # noqa: E402
from app.api.routers.notifications import router as notifications_router  # noqa: E402
from app.api.routers.orders import router as orders_router  # noqa: E402
from app.metrics import router as metrics_router  # noqa: E402

# ===========================
#          routers
# ===========================
app.include_router(orders_router)
app.include_router(inventory_router)
app.include_router(notifications_router)

# observability
app.include_router(metrics_router)
app.include_router(health_router)


@app.get("/")
async def root():
    return {"name": "Stockdesk", "version": "1.0.0"}
