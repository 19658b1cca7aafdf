import hashlib
import logging
import time
from supabase import Client
from tribe.modules.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, RegisterResponse
from fastapi import HTTPException
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

# Resolved users by token hash; a page load fans out into many requests with the same token
_AUTH_USER_CACHE: Dict[str, tuple] = {}
_AUTH_CACHE_TTL_SEC = 60
_AUTH_CACHE_MAX_SIZE = 500


def _token_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def _cached_user(token: str) -> Optional[Dict[str, Any]]:
    key = _token_key(token)
    entry = _AUTH_USER_CACHE.get(key)
    if entry is None:
        return None
    user_data, expiry = entry
    if time.monotonic() >= expiry:
        _AUTH_USER_CACHE.pop(key, None)
        return None
    return user_data


def _remember_user(token: str, user_data: Dict[str, Any]) -> None:
    if len(_AUTH_USER_CACHE) < _AUTH_CACHE_MAX_SIZE:
        _AUTH_USER_CACHE[_token_key(token)] = (user_data, time.monotonic() + _AUTH_CACHE_TTL_SEC)


def forget_token(token: str) -> None:
    _AUTH_USER_CACHE.pop(_token_key(token), None)


class AuthService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def register(self, register_data: RegisterRequest) -> RegisterResponse:
        """Sign up with Supabase Auth and create the family profile"""
        names = {
            key: value for key, value in (
                ("first_name", register_data.first_name),
                ("last_name", register_data.last_name),
            ) if value
        }
        try:
            auth_response = self.supabase.auth.sign_up({
                "email": register_data.email,
                "password": register_data.password,
                "options": {"data": names}
            })
        except Exception as e:
            message = str(e).lower()
            if "already registered" in message or "already exists" in message:
                raise HTTPException(status_code=400, detail="User already exists")
            raise HTTPException(status_code=500, detail=f"Registration failed: {e}")

        user = auth_response.user
        if not user:
            raise HTTPException(status_code=400, detail="Failed to register user")

        email = user.email or register_data.email
        self._ensure_profile(user.id, email, names)
        logger.info(f"Registered user {user.id}")
        return RegisterResponse(user_id=user.id, email=email, message="User registered successfully")

    def _ensure_profile(self, user_id: str, email: str, names: Dict[str, str]) -> None:
        # A database trigger normally creates the row; upserting keeps sign-up working without it
        try:
            self.supabase.table("profiles").upsert(
                {"id": user_id, "email": email, **names}, on_conflict="id"
            ).execute()
        except Exception as e:
            logger.warning(f"Could not create profile for {user_id}: {e}")

    def login(self, login_data: LoginRequest) -> TokenResponse:
        """Password sign-in; returns the Supabase access token"""
        try:
            auth_response = self.supabase.auth.sign_in_with_password({
                "email": login_data.email,
                "password": login_data.password
            })
        except Exception as e:
            message = str(e).lower()
            if "invalid" in message or "credentials" in message:
                raise HTTPException(status_code=401, detail="Invalid email or password")
            raise HTTPException(status_code=500, detail=f"Login failed: {e}")

        if not auth_response.user or not auth_response.session:
            raise HTTPException(status_code=401, detail="Invalid credentials")

        return TokenResponse(
            access_token=auth_response.session.access_token,
            user_id=auth_response.user.id,
            email=auth_response.user.email or login_data.email
        )

    def get_current_user(self, token: str) -> Dict[str, Any]:
        """Resolve a bearer token to the user's id, email and metadata"""
        user_data = _cached_user(token)
        if user_data is not None:
            return user_data

        try:
            user_response = self.supabase.auth.get_user(jwt=token)
        except Exception as e:
            logger.info(f"Rejected bearer token: {e}")
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user = getattr(user_response, "user", None)
        if not user:
            raise HTTPException(status_code=401, detail="Invalid or expired token")

        user_data = {
            "id": user.id,
            "email": user.email,
            "user_metadata": user.user_metadata or {},
            "app_metadata": user.app_metadata or {},
            "created_at": user.created_at,
            "updated_at": user.updated_at
        }
        _remember_user(token, user_data)
        return user_data

    def logout(self, token: str) -> bool:
        """End the session; the JWT itself stays valid until it expires"""
        forget_token(token)
        try:
            self.supabase.auth.sign_out()
            return True
        except Exception as e:
            logger.warning(f"Sign-out failed: {e}")
            return False
