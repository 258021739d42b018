"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from survai import __version__
from survai.api.middleware import RequestContextMiddleware
from survai.api.responses import register_exception_handlers
from survai.api.routes import api_router
from survai.logging_config import setup_logging
from survai.persistence.database import create_tables, engine
from survai.settings import settings

setup_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    if settings.auto_create_tables:
        await create_tables()
        logger.info("Database tables ensured")
    yield
    await engine.dispose()


app = FastAPI(
    title="Survai Tracking API",
    description="Offer click tracking and conversion attribution",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(
    RequestContextMiddleware,
    tracking_path_prefix=f"{settings.api_prefix}/track",
)

register_exception_handlers(app)

app.include_router(api_router, prefix=settings.api_prefix)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
