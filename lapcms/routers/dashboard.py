from fastapi import APIRouter, Depends, Query

from lapcms.core.policy import authorize
from lapcms.core.rate_limit import rate_limit
from lapcms.deps import get_current_user, get_dashboard_service
from lapcms.models.user import User
from lapcms.services.dashboard import DashboardService

router = APIRouter(dependencies=[Depends(rate_limit("general"))])


@router.get("/stats")
def read_stats(
    current_user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    """Totals, latest posts and posts per category."""
    authorize(current_user, "dashboard", "read")
    return {"success": True, "data": service.stats()}


@router.get("/recent-activity")
def read_recent_activity(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    authorize(current_user, "dashboard", "read")
    return {"success": True, "data": service.recent_activity(limit)}


@router.get("/quick-stats")
def read_quick_stats(
    current_user: User = Depends(get_current_user),
    service: DashboardService = Depends(get_dashboard_service),
):
    authorize(current_user, "dashboard", "read")
    return {"success": True, "data": service.quick_stats()}
