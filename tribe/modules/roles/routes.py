from fastapi import APIRouter, Depends, HTTPException, status
from tribe.database.supabase_client import get_supabase
from tribe.modules.roles.schemas import (
    RoleResponse, RBACContext, ContextType, MyRoleResponse,
    RoleAssignmentRequest, RoleAssignmentResponse,
    PermissionCheckRequest, PermissionCheckResponse
)
from tribe.modules.roles.service import RoleService
from tribe.core.dependencies import (
    get_current_user_id, get_rbac_service, check_tree_admin, check_tree_owner, check_branch_permission
)
from tribe.core.rbac import RBACService
from supabase import Client
from typing import List, Optional, Dict

router = APIRouter(prefix="/roles", tags=["roles"])


def get_role_service(supabase: Client = Depends(get_supabase)) -> RoleService:
    return RoleService(supabase)


def _context(context_type: str, context_id: Optional[str]) -> RBACContext:
    if context_type != "global" and not context_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="context_id is required for tree and branch contexts")
    return RBACContext(type=context_type, id=context_id if context_type != "global" else None)


def _check_can_manage_roles(context: RBACContext, role: Optional[str], user_data: Dict, supabase: Client) -> None:
    """Tree admins manage tree roles, branch member managers manage branch roles; owner grants need an owner"""
    if context.type == "tree":
        check_tree_admin(context.id, user_data, supabase)
        if role == "owner":
            check_tree_owner(context.id, user_data, supabase)
    elif context.type == "branch":
        check_branch_permission(context.id, user_data, supabase, "can_manage_members")
        if role == "owner":
            check_branch_permission(context.id, user_data, supabase, "is_owner")
    else:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Global roles cannot be managed through the API")


def _check_can_change_holder(context: RBACContext, user_id: str, user_data: Dict, supabase: Client) -> None:
    """Only owners change or remove another owner's role"""
    if RBACService(supabase).get_user_role(user_id, context) == "owner":
        _check_can_manage_roles(context, "owner", user_data, supabase)


@router.get("", response_model=List[RoleResponse])
async def list_roles(
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    """List system roles (highest priority first) with their permissions"""
    return service.list_roles()


@router.get("/me", response_model=MyRoleResponse)
async def get_my_role(
    context_type: ContextType,
    context_id: Optional[str] = None,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service)
):
    """The caller's role and assigned permissions in a context"""
    return service.get_my_role(user_data["id"], _context(context_type, context_id))


@router.post("/check", response_model=PermissionCheckResponse)
async def check_permission(
    check: PermissionCheckRequest,
    user_data: Dict = Depends(get_current_user_id),
    rbac: RBACService = Depends(get_rbac_service)
):
    """Whether the caller holds a named permission in a context"""
    context = _context(check.context_type, check.context_id)
    return PermissionCheckResponse(
        permission=check.permission,
        allowed=rbac.has_permission(user_data["id"], context, check.permission)
    )


@router.post("/assignments", response_model=RoleAssignmentResponse, status_code=201)
async def assign_role(
    assignment: RoleAssignmentRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service),
    supabase: Client = Depends(get_supabase)
):
    """Assign a role to a user in a tree or branch"""
    context = _context(assignment.context_type, assignment.context_id)
    _check_can_manage_roles(context, assignment.role, user_data, supabase)
    _check_can_change_holder(context, assignment.user_id, user_data, supabase)
    service.assign_role(assignment.user_id, assignment.role, context, user_data["id"])
    return RoleAssignmentResponse(
        user_id=assignment.user_id,
        role=assignment.role,
        context_type=context.type,
        context_id=context.id,
        granted_by=user_data["id"]
    )


@router.delete("/assignments", status_code=204)
async def remove_role(
    user_id: str,
    context_type: ContextType,
    context_id: Optional[str] = None,
    user_data: Dict = Depends(get_current_user_id),
    service: RoleService = Depends(get_role_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a user's roles in a tree or branch"""
    context = _context(context_type, context_id)
    _check_can_manage_roles(context, None, user_data, supabase)
    _check_can_change_holder(context, user_id, user_data, supabase)
    service.remove_role(user_id, context)
    return None
