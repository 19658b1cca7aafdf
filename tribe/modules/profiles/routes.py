from fastapi import APIRouter, Depends, HTTPException, status
from tribe.database.supabase_client import get_supabase, get_service_supabase
from tribe.modules.profiles.schemas import (
    ProfileUpdate, ProfileResponse, UserSettingsUpdate, UserSettingsResponse
)
from tribe.modules.profiles.service import ProfileService
from tribe.core.dependencies import get_current_user_id, user_can_access_user
from tribe.core.rbac import clear_rbac_cache
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Get the current user's profile"""
    return service.get_profile(user_data["id"])


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Update the current user's profile"""
    return service.update_profile(user_data["id"], profile_data)


@router.delete("/me", status_code=204)
async def delete_my_account(
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
    admin_client: Client = Depends(get_service_supabase)
):
    """Delete the current user's account and every membership"""
    service.delete_account(user_data["id"], admin_client)
    clear_rbac_cache(user_data["id"])
    return None


@router.get("/me/settings", response_model=UserSettingsResponse)
async def get_my_settings(
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Get privacy and notification settings"""
    return service.get_settings(user_data["id"])


@router.put("/me/settings", response_model=UserSettingsResponse)
async def update_my_settings(
    settings_data: UserSettingsUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Update privacy and notification settings"""
    return service.update_settings(user_data["id"], settings_data)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
    supabase: Client = Depends(get_supabase)
):
    """Get a profile (only if same user or shares a tree)"""
    if not user_can_access_user(user_data["id"], user_id, supabase):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Profile not accessible")
    return service.get_profile(user_id)
