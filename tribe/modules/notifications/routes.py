from fastapi import APIRouter, Depends
from tribe.database.supabase_client import get_supabase
from tribe.modules.notifications.schemas import NotificationResponse, MarkAllReadResponse
from tribe.modules.notifications.service import NotificationService
from tribe.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(supabase: Client = Depends(get_supabase)) -> NotificationService:
    return NotificationService(supabase)


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    """List the caller's in-app notifications"""
    return service.list_notifications(user_data["id"], unread_only, min(max(limit, 1), 100), max(offset, 0))


@router.post("/mark-all-read", response_model=MarkAllReadResponse)
async def mark_all_read(
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return MarkAllReadResponse(updated=service.mark_all_read(user_data["id"]))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    return service.mark_read(user_data["id"], notification_id)
