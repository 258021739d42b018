"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from survai.domain.services.tracking_service import TrackingService
from survai.persistence.database import get_db


async def get_tracking_service(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> TrackingService:
    """Build a tracking service bound to the request's database session."""
    return TrackingService(db)
