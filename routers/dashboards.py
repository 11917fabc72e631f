"""
Dashboard APIs for all roles.
"""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from auth.dependencies import get_current_actor
from core.exceptions import WarningTrackerError
from core.schemas import Actor
from routers.common import get_notifications, get_repository, http_error
from services.notification_service import NotificationDispatcher
from services.report_repository import ReportRepository


router = APIRouter(prefix="/api/dashboard", tags=["dashboards"])


class DashboardStats(BaseModel):
    """Counts over the reports the caller can see."""
    total: int
    draft: int
    submitted: int
    approved: int
    finalized: int
    banned: int
    unreadNotifications: int


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    actor: Actor = Depends(get_current_actor),
    repository: ReportRepository = Depends(get_repository),
    notifications: NotificationDispatcher = Depends(get_notifications)
):
    """
    Status breakdown for the caller's dashboard.
    Lecturers see their own reports, campus roles their campus, org-wide roles everything.
    """
    try:
        stats = repository.stats(actor)
        stats["unreadNotifications"] = notifications.feed(actor)["unread"]
    except WarningTrackerError as e:
        raise http_error(e)
    return stats
