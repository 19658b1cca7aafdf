from supabase import Client
from tribe.modules.notifications.schemas import NotificationCreate, NotificationResponse
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_notification(self, notification: NotificationCreate) -> Optional[NotificationResponse]:
        """Store an in-app notification; failures are logged and never block the caller"""
        try:
            result = self.supabase.table("inapp_notifications").insert({
                **notification.model_dump(exclude_none=True),
                "is_read": False
            }).execute()
            if not result.data:
                return None
            return NotificationResponse(**result.data[0])
        except Exception as e:
            logger.error(f"Error creating notification for {notification.user_id}: {e}")
            return None

    def list_notifications(
        self, user_id: str, unread_only: bool = False, limit: int = 20, offset: int = 0
    ) -> List[NotificationResponse]:
        """Newest first"""
        try:
            query = self.supabase.table("inapp_notifications")\
                .select("*")\
                .eq("user_id", user_id)
            if unread_only:
                query = query.eq("is_read", False)
            result = query.order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            return [NotificationResponse(**n) for n in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def mark_read(self, user_id: str, notification_id: str) -> NotificationResponse:
        try:
            result = self.supabase.table("inapp_notifications")\
                .update({"is_read": True, "read_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", notification_id)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Notification not found")

            return NotificationResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def mark_all_read(self, user_id: str) -> int:
        try:
            result = self.supabase.table("inapp_notifications")\
                .update({"is_read": True, "read_at": datetime.now(timezone.utc).isoformat()})\
                .eq("user_id", user_id)\
                .eq("is_read", False)\
                .execute()
            return len(result.data or [])
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
