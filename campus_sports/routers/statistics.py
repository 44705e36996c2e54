from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from campus_sports.dependencies import get_statistics_service
from campus_sports.models.user import User
from campus_sports.core.security import get_current_admin
from campus_sports.services.statistics_service import StatisticsService


router = APIRouter(prefix="/statistics", tags=["statistics"])


@router.get("/")
def statistics_summary(
    university_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    service: StatisticsService = Depends(get_statistics_service),
    current_admin: User = Depends(get_current_admin),
):
    return service.summary(current_admin, university_id, date_from, date_to)
