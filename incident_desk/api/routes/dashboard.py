import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from incident_desk.api.dependencies import CurrentUser, get_current_user, require_role
from incident_desk.database import get_db
from incident_desk.models.base import PRIVILEGED_ROLES
from incident_desk.schemas.dashboard import GlobalDashboardStats, ScopedDashboardStats
from incident_desk.services import dashboard_service

logger = logging.getLogger(__name__)

router = APIRouter()

STATS_UNAVAILABLE = "Dashboard statistics are temporarily unavailable."


@router.get("/me", response_model=ScopedDashboardStats)
async def get_my_stats(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
):
    """Status breakdown of the tickets the caller reported."""
    try:
        return await dashboard_service.get_scoped_stats(db, current_user.user.id)
    except (SQLAlchemyError, OSError):
        logger.exception("Scoped dashboard stats failed for user %s", current_user.user.id)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STATS_UNAVAILABLE)


@router.get("/summary", response_model=GlobalDashboardStats)
async def get_summary(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(require_role(*PRIVILEGED_ROLES)),
):
    """Organisation-wide counts by status, priority, category and assignee."""
    try:
        return await dashboard_service.get_global_stats(db)
    except (SQLAlchemyError, OSError):
        logger.exception("Global dashboard stats failed")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=STATS_UNAVAILABLE)
