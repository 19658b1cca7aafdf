from supabase import Client
from tribe.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, UserSettingsUpdate, UserSettingsResponse
)
from typing import Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> ProfileResponse:
        """Get profile by user ID"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def find_profile(self, user_id: str) -> Optional[dict]:
        """Profile row or None; never raises"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            return result.data[0] if result.data else None
        except Exception as e:
            logger.error(f"Error fetching profile {user_id}: {e}")
            return None

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update profile; only fields that were sent are written"""
        try:
            update_data = profile_data.model_dump(exclude_none=True)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_account(self, user_id: str, admin_client: Optional[Client] = None) -> bool:
        """Delete memberships, role assignments, settings and profile; then the auth user when an admin client is given"""
        try:
            for table in ("branch_members", "tree_members", "user_roles", "user_settings"):
                self.supabase.table(table)\
                    .delete()\
                    .eq("user_id", user_id)\
                    .execute()

            result = self.supabase.table("profiles")\
                .delete()\
                .eq("id", user_id)\
                .execute()

            if admin_client is not None:
                try:
                    admin_client.auth.admin.delete_user(user_id)
                except Exception as e:
                    logger.warning(f"Profile removed but auth user {user_id} could not be deleted: {e}")

            logger.info(f"Deleted account {user_id}")
            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_settings(self, user_id: str) -> UserSettingsResponse:
        """Get user settings, creating the defaults row on first read"""
        try:
            result = self.supabase.table("user_settings")\
                .select("*")\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()

            if result.data:
                return UserSettingsResponse(**result.data[0])

            created = self.supabase.table("user_settings").insert({
                "user_id": user_id
            }).execute()

            if not created.data:
                raise HTTPException(status_code=500, detail="Failed to create user settings")

            return UserSettingsResponse(**created.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_settings(self, user_id: str, settings_data: UserSettingsUpdate) -> UserSettingsResponse:
        """Update user settings"""
        try:
            self.get_settings(user_id)

            update_data = settings_data.model_dump(exclude_none=True)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("user_settings")\
                .update(update_data)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="User settings not found")

            return UserSettingsResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
