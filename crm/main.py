"""
Audience CRM - main API
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm.api.deps import get_dispatcher
from crm.api.error_handlers import register_exception_handlers
from crm.api.routes import ai, audiences, campaigns, customers, health, vendor, webhooks
from crm.core.config import settings
from crm.core.logging import setup_logging
from crm.services.http_client import close_http_client

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manages startup and shutdown."""
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")
    yield
    logger.info(f"Shutting down {settings.APP_NAME}...")
    # In-flight vendor sends finish before the shared client goes away
    if get_dispatcher.cache_info().currsize:
        await get_dispatcher().drain()
    await close_http_client()


app = FastAPI(
    title=settings.APP_NAME,
    description="Audience segmentation and campaign delivery",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(health.router)
app.include_router(customers.router)
app.include_router(audiences.router)
app.include_router(campaigns.router)
app.include_router(webhooks.router)
app.include_router(vendor.router)
app.include_router(ai.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.APP_NAME,
        "status": "running",
        "docs": "/docs",
    }
