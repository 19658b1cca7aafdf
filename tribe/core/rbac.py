"""
Role resolution and permission lookup for trees and branches.

Roles are resolved per (user, context) and cached in process. The caches have
no TTL; they are only dropped by role mutations or an explicit clear.
"""

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Any

from supabase import Client

from tribe.config.permissions_config import ROLE_HIERARCHY, NO_ROLE, ROLE_PERMISSION_TABLE
from tribe.modules.roles.schemas import RBACContext, BranchPermissions

logger = logging.getLogger(__name__)

# "<user_id>:<context_type>:<context_id|global>" -> role name / permission map
_ROLE_CACHE: Dict[str, str] = {}
_PERMISSIONS_CACHE: Dict[str, Dict[str, bool]] = {}
_CACHE_LOCK = threading.Lock()

# Context types whose record carries a created_by column
_CREATOR_TABLES = {
    "branch": "branches",
    "tree": "trees",
}


def _cache_key(user_id: str, context: RBACContext) -> str:
    return f"{user_id}:{context.cache_key_suffix}"


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _is_expired(assignment: Dict[str, Any]) -> bool:
    expires_at = _parse_timestamp(assignment.get("expires_at"))
    return expires_at is not None and expires_at <= datetime.now(timezone.utc)


def highest_priority_role(role_names: Iterable[Optional[str]]) -> str:
    """Pick the highest priority role out of role_names; 'none' when nothing known is given."""
    ranked = [name for name in role_names if name in ROLE_HIERARCHY]
    if not ranked:
        return NO_ROLE
    return min(ranked, key=ROLE_HIERARCHY.index)


def permissions_for_role(role: str) -> BranchPermissions:
    """Map a role name to its static permission object."""
    flags = ROLE_PERMISSION_TABLE.get(role, {})
    return BranchPermissions(
        **flags,
        is_owner=role == "owner",
        is_admin=role in ("owner", "admin"),
        is_moderator=role in ("owner", "admin", "moderator"),
        user_role=role if role in ROLE_HIERARCHY else NO_ROLE,
    )


def clear_rbac_cache(user_id: Optional[str] = None) -> None:
    with _CACHE_LOCK:
        if user_id is None:
            _ROLE_CACHE.clear()
            _PERMISSIONS_CACHE.clear()
            return
        prefix = f"{user_id}:"
        for cache in (_ROLE_CACHE, _PERMISSIONS_CACHE):
            for key in [k for k in cache if k.startswith(prefix)]:
                del cache[key]


class RBACService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def clear_cache(self, user_id: Optional[str] = None) -> None:
        """Drop cached roles and permissions for one user, or for everybody."""
        clear_rbac_cache(user_id)

    def _is_creator(self, user_id: str, context: RBACContext) -> bool:
        table = _CREATOR_TABLES.get(context.type)
        if not table or not context.id:
            return False
        result = self.supabase.table(table)\
            .select("created_by")\
            .eq("id", context.id)\
            .limit(1)\
            .execute()
        return bool(result.data) and result.data[0].get("created_by") == user_id

    def _assigned_role_ids(self, user_id: str, context: RBACContext) -> List[str]:
        query = self.supabase.table("user_roles")\
            .select("role_id, expires_at")\
            .eq("user_id", user_id)\
            .eq("context_type", context.type)
        if context.id:
            query = query.eq("context_id", context.id)
        else:
            query = query.is_("context_id", "null")
        result = query.execute()
        if not result.data:
            return []
        return list({r["role_id"] for r in result.data if not _is_expired(r)})

    def get_user_role(self, user_id: str, context: RBACContext) -> str:
        """Resolve the user's role in context: creator is owner, otherwise the highest assigned role."""
        cache_key = _cache_key(user_id, context)
        cached = _ROLE_CACHE.get(cache_key)
        if cached is not None:
            return cached

        try:
            if self._is_creator(user_id, context):
                role = "owner"
            else:
                role_ids = self._assigned_role_ids(user_id, context)
                if not role_ids:
                    role = NO_ROLE
                else:
                    roles_result = self.supabase.table("roles")\
                        .select("id, name")\
                        .in_("id", role_ids)\
                        .execute()
                    role = highest_priority_role(r.get("name") for r in roles_result.data or [])
            with _CACHE_LOCK:
                _ROLE_CACHE[cache_key] = role
            return role
        except Exception as e:
            logger.error(f"Error getting user role: {e}")
            return NO_ROLE

    def has_permission(self, user_id: str, context: RBACContext, permission_name: str) -> bool:
        """Ask the database whether the user holds permission_name in context."""
        try:
            result = self.supabase.rpc("user_has_permission", {
                "check_user_id": user_id,
                "context_type": context.type,
                "context_id": context.id,
                "permission_name": permission_name,
            }).execute()
            return result.data is True
        except Exception as e:
            logger.error(f"Error checking permission: {e}")
            return False

    def get_user_permissions(self, user_id: str, context: RBACContext) -> Dict[str, bool]:
        """All permission names granted through the user's assigned roles in context."""
        cache_key = _cache_key(user_id, context)
        cached = _PERMISSIONS_CACHE.get(cache_key)
        if cached is not None:
            return cached

        try:
            permissions: Dict[str, bool] = {}
            role_ids = self._assigned_role_ids(user_id, context)
            if role_ids:
                rp_result = self.supabase.table("role_permissions")\
                    .select("permission_id")\
                    .in_("role_id", role_ids)\
                    .execute()
                permission_ids = list({rp["permission_id"] for rp in rp_result.data or []})
                if permission_ids:
                    perm_result = self.supabase.table("permissions")\
                        .select("id, name")\
                        .in_("id", permission_ids)\
                        .execute()
                    for perm in perm_result.data or []:
                        if perm.get("name"):
                            permissions[perm["name"]] = True
            with _CACHE_LOCK:
                _PERMISSIONS_CACHE[cache_key] = permissions
            return permissions
        except Exception as e:
            logger.error(f"Error getting user permissions: {e}")
            return {}

    def get_branch_permissions(self, user_id: str, branch_id: str) -> BranchPermissions:
        """Permission object for a branch, including public and cross-tree read access for outsiders."""
        try:
            role = self.get_user_role(user_id, RBACContext(type="branch", id=branch_id))
            permissions = permissions_for_role(role)
            if role != NO_ROLE:
                return permissions

            branch_result = self.supabase.table("branches")\
                .select("privacy")\
                .eq("id", branch_id)\
                .limit(1)\
                .execute()
            branch = branch_result.data[0] if branch_result.data else {}
            permissions.can_read = branch.get("privacy") == "public"

            if has_user_cross_tree_access(self.supabase, user_id, branch_id):
                # Cross-tree visitors can read and post but never manage
                permissions.can_read = True
                permissions.can_create_posts = True
            return permissions
        except Exception as e:
            logger.error(f"Error getting branch permissions: {e}")
            return BranchPermissions()

    def get_tree_permissions(self, user_id: str, tree_id: str) -> BranchPermissions:
        try:
            role = self.get_user_role(user_id, RBACContext(type="tree", id=tree_id))
            return permissions_for_role(role)
        except Exception as e:
            logger.error(f"Error getting tree permissions: {e}")
            return BranchPermissions()

    def assign_role(self, user_id: str, role_name: str, context: RBACContext, granted_by: Optional[str]) -> bool:
        try:
            role_result = self.supabase.table("roles")\
                .select("id")\
                .eq("name", role_name)\
                .limit(1)\
                .execute()
            if not role_result.data:
                raise ValueError(f"Role {role_name} not found")

            self.supabase.table("user_roles").upsert({
                "user_id": user_id,
                "role_id": role_result.data[0]["id"],
                "context_type": context.type,
                "context_id": context.id,
                "granted_by": granted_by,
            }, on_conflict="user_id,role_id,context_type,context_id").execute()

            self.clear_cache(user_id)
            return True
        except Exception as e:
            logger.error(f"Error assigning role: {e}")
            return False

    def remove_role(self, user_id: str, context: RBACContext) -> bool:
        try:
            query = self.supabase.table("user_roles")\
                .delete()\
                .eq("user_id", user_id)\
                .eq("context_type", context.type)
            if context.id:
                query = query.eq("context_id", context.id)
            else:
                query = query.is_("context_id", "null")
            query.execute()

            self.clear_cache(user_id)
            return True
        except Exception as e:
            logger.error(f"Error removing role: {e}")
            return False


# Convenience functions for common branch checks

def get_user_branch_role(supabase: Client, user_id: str, branch_id: str) -> str:
    return RBACService(supabase).get_user_role(user_id, RBACContext(type="branch", id=branch_id))


def can_user_create_leaves(supabase: Client, user_id: str, branch_id: str) -> bool:
    return RBACService(supabase).get_branch_permissions(user_id, branch_id).can_create_posts


def can_user_moderate(supabase: Client, user_id: str, branch_id: str) -> bool:
    return RBACService(supabase).get_branch_permissions(user_id, branch_id).can_moderate


def is_user_branch_admin(supabase: Client, user_id: str, branch_id: str) -> bool:
    return RBACService(supabase).get_branch_permissions(user_id, branch_id).is_admin


def is_user_branch_owner(supabase: Client, user_id: str, branch_id: str) -> bool:
    return RBACService(supabase).get_branch_permissions(user_id, branch_id).is_owner


# Cross-tree access: lets the members of one tree see a branch of another

def create_cross_tree_access(
    supabase: Client,
    branch_id: str,
    tree_id: str,
    invited_by: str,
    permissions: Dict[str, bool],
) -> Optional[Dict[str, Any]]:
    try:
        result = supabase.table("cross_tree_access").insert({
            "branch_id": branch_id,
            "tree_id": tree_id,
            "invited_by": invited_by,
            "permissions": permissions,
            "status": "active",
        }).execute()
        return result.data[0] if result.data else None
    except Exception as e:
        logger.error(f"Error creating cross-tree access: {e}")
        return None


def get_cross_tree_access(supabase: Client, branch_id: str) -> List[Dict[str, Any]]:
    try:
        result = supabase.table("cross_tree_access")\
            .select("*")\
            .eq("branch_id", branch_id)\
            .eq("status", "active")\
            .execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error getting cross-tree access: {e}")
        return []


def revoke_cross_tree_access(supabase: Client, access_id: str) -> bool:
    try:
        result = supabase.table("cross_tree_access")\
            .update({"status": "revoked"})\
            .eq("id", access_id)\
            .execute()
        return bool(result.data)
    except Exception as e:
        logger.error(f"Error revoking cross-tree access: {e}")
        return False


def has_user_cross_tree_access(supabase: Client, user_id: str, branch_id: str) -> bool:
    """True if any tree the user belongs to holds active access to branch_id."""
    try:
        trees_result = supabase.table("tree_members")\
            .select("tree_id")\
            .eq("user_id", user_id)\
            .execute()
        tree_ids = [tm["tree_id"] for tm in trees_result.data or []]
        if not tree_ids:
            return False
        access_result = supabase.table("cross_tree_access")\
            .select("id")\
            .eq("branch_id", branch_id)\
            .in_("tree_id", tree_ids)\
            .eq("status", "active")\
            .limit(1)\
            .execute()
        return bool(access_result.data)
    except Exception as e:
        logger.error(f"Error checking cross-tree access: {e}")
        return False
