"""API routes."""

from fastapi import APIRouter

from survai.api.routes import tracking

api_router = APIRouter()

# Public routes (no auth required)
api_router.include_router(tracking.router, prefix="/track", tags=["tracking"])
