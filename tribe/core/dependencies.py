"""
Core dependencies for route protection and permission checking
"""

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from tribe.database.supabase_client import get_supabase
from tribe.modules.auth.service import AuthService
from tribe.core.rbac import RBACService
from tribe.modules.roles.schemas import BranchPermissions
from supabase import Client
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_rbac_service(supabase: Client = Depends(get_supabase)) -> RBACService:
    return RBACService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_user_tree_ids(user_id: str, supabase: Client) -> List[str]:
    """Return tree_ids from tree_members"""
    try:
        result = supabase.table("tree_members")\
            .select("tree_id")\
            .eq("user_id", user_id)\
            .execute()
        return [m["tree_id"] for m in result.data or []]
    except Exception as e:
        logger.error(f"Error getting user tree ids: {e}")
        return []


def user_can_access_user(current_user_id: str, target_user_id: str, supabase: Client) -> bool:
    """True if target is self or shares at least one tree with current user"""
    if current_user_id == target_user_id:
        return True
    my_tree_ids = get_user_tree_ids(current_user_id, supabase)
    if not my_tree_ids:
        return False
    member_result = supabase.table("tree_members")\
        .select("id")\
        .eq("user_id", target_user_id)\
        .in_("tree_id", my_tree_ids)\
        .limit(1)\
        .execute()
    return bool(member_result.data)


def get_tree_member_role(tree_id: str, user_id: str, supabase: Client) -> Optional[str]:
    """Membership role of user in tree, or None when not a member"""
    member_result = supabase.table("tree_members")\
        .select("role")\
        .eq("tree_id", tree_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    if not member_result.data:
        return None
    return member_result.data[0].get("role") or "member"


def check_tree_member(tree_id: str, user_data: dict, supabase: Client) -> str:
    """Require tree membership; returns the membership role"""
    role = get_tree_member_role(tree_id, user_data["id"], supabase)
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be a member of this tree"
        )
    return role


def check_tree_admin(tree_id: str, user_data: dict, supabase: Client) -> dict:
    """Check if user is creator, owner or admin of a tree"""
    user_id = user_data["id"]

    tree_result = supabase.table("trees")\
        .select("created_by")\
        .eq("id", tree_id)\
        .limit(1)\
        .execute()
    if not tree_result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tree not found")
    if tree_result.data[0].get("created_by") == user_id:
        return user_data

    if get_tree_member_role(tree_id, user_id, supabase) in ("owner", "admin"):
        return user_data

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a tree owner or admin to perform this action"
    )


def check_tree_owner(tree_id: str, user_data: dict, supabase: Client) -> dict:
    """Check if user is creator or owner of a tree"""
    user_id = user_data["id"]

    tree_result = supabase.table("trees")\
        .select("created_by")\
        .eq("id", tree_id)\
        .limit(1)\
        .execute()
    if not tree_result.data:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tree not found")
    if tree_result.data[0].get("created_by") == user_id:
        return user_data

    if get_tree_member_role(tree_id, user_id, supabase) == "owner":
        return user_data

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be the tree owner to perform this action"
    )


def check_branch_permission(branch_id: str, user_data: dict, supabase: Client, flag: str) -> BranchPermissions:
    """Raise 403 unless the user's branch permission object has flag set"""
    permissions = RBACService(supabase).get_branch_permissions(user_data["id"], branch_id)
    if not getattr(permissions, flag, False):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Insufficient permissions. Required: {flag}"
        )
    return permissions


def require_branch_permission(flag: str):
    """Factory function to create a branch permission dependency (reads branch_id from the path)"""
    def check_permission(
        branch_id: str,
        user_data: dict = Depends(get_current_user_id),
        supabase: Client = Depends(get_supabase)
    ) -> dict:
        check_branch_permission(branch_id, user_data, supabase, flag)
        return user_data
    return check_permission
