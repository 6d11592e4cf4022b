"""Analytics API endpoints."""
from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from taskhub.database import get_db
from taskhub.dependencies import get_current_user
from taskhub.models.user import User
from taskhub.schemas.analytics import ProductivityPoint, TaskStatsResponse, TeamPerformanceRow
from taskhub.services.analytics_service import analytics_service

router = APIRouter()


@router.get("/stats", response_model=TaskStatsResponse)
async def get_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Task counts over everything the caller can see."""
    return await analytics_service.get_stats(db, user_id=current_user.id)


@router.get("/productivity", response_model=List[ProductivityPoint])
async def get_productivity(
    days: int = Query(7, ge=1, le=365),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Created/completed counts per day of task creation."""
    return await analytics_service.get_productivity(db, user_id=current_user.id, days=days)


@router.get("/team", response_model=List[TeamPerformanceRow])
async def get_team_performance(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Completed and total visible tasks per owner."""
    rows = await analytics_service.get_team_performance(db, user_id=current_user.id)
    return [TeamPerformanceRow.model_validate(row) for row in rows]
