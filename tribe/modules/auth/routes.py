from fastapi import APIRouter, Depends, Security
from fastapi.security import HTTPAuthorizationCredentials
from tribe.database.supabase_client import get_supabase
from tribe.modules.auth.schemas import (
    LoginRequest, RegisterRequest, TokenResponse, RegisterResponse, CurrentUserResponse
)
from tribe.modules.auth.service import AuthService
from tribe.modules.profiles.service import ProfileService
from tribe.modules.trees.service import TreeService
from tribe.core.dependencies import get_current_user_id, get_auth_service, security
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/auth", tags=["auth"])


def get_current_token(
    credentials: HTTPAuthorizationCredentials = Security(security)
) -> str:
    """Extract JWT token from Authorization header"""
    return credentials.credentials


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    register_data: RegisterRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Register a new user"""
    return service.register(register_data)


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service)
):
    """Login and get access token"""
    return service.login(login_data)


@router.post("/logout", status_code=200)
async def logout(
    token: str = Depends(get_current_token),
    service: AuthService = Depends(get_auth_service)
):
    """Logout and invalidate token"""
    service.logout(token)
    return {"message": "Logged out successfully"}


@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user(
    user_data: Dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
):
    """Get current user info with profile and primary tree"""
    return CurrentUserResponse(
        id=user_data["id"],
        email=user_data.get("email"),
        user_metadata=user_data.get("user_metadata") or {},
        profile=ProfileService(supabase).find_profile(user_data["id"]),
        primary_tree_id=TreeService(supabase).get_primary_tree_id(user_data["id"])
    )
