from fastapi import APIRouter, Depends, HTTPException, status
from tribe.database.supabase_client import get_supabase
from tribe.modules.branches.schemas import (
    BranchCreate, BranchUpdate, BranchResponse,
    BranchMemberAdd, BranchMemberRoleUpdate, BranchMemberResponse,
    CrossTreeAccessCreate, CrossTreeAccessResponse
)
from tribe.modules.branches.service import BranchService
from tribe.modules.roles.schemas import BranchPermissions
from tribe.core.dependencies import (
    get_current_user_id, get_rbac_service, check_tree_member,
    check_branch_permission, require_branch_permission
)
from tribe.core.rbac import RBACService, get_user_branch_role
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/branches", tags=["branches"])


def get_branch_service(supabase: Client = Depends(get_supabase)) -> BranchService:
    return BranchService(supabase)


@router.post("", response_model=BranchResponse, status_code=201)
async def create_branch(
    branch_data: BranchCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: BranchService = Depends(get_branch_service),
    supabase: Client = Depends(get_supabase)
):
    """Create a branch (caller must be a member of the tree)"""
    check_tree_member(branch_data.tree_id, user_data, supabase)
    return service.create_branch(branch_data, user_data["id"])


@router.get("", response_model=List[BranchResponse])
async def list_tree_branches(
    tree_id: str,
    limit: int = 20,
    offset: int = 0,
    user_data: Dict = Depends(get_current_user_id),
    service: BranchService = Depends(get_branch_service),
    supabase: Client = Depends(get_supabase)
):
    """List a tree's branches (only if user is a tree member)"""
    check_tree_member(tree_id, user_data, supabase)
    return service.list_tree_branches(tree_id, limit=min(limit, 100), offset=max(offset, 0))


@router.get("/mine", response_model=List[BranchResponse])
async def list_my_branches(
    user_data: Dict = Depends(get_current_user_id),
    service: BranchService = Depends(get_branch_service)
):
    """List branches the caller is an active member of"""
    return service.list_user_branches(user_data["id"])


@router.get("/{branch_id}", response_model=BranchResponse)
async def get_branch(
    branch_id: str,
    user_data: Dict = Depends(require_branch_permission("can_read")),
    service: BranchService = Depends(get_branch_service)
):
    """Get branch by ID (requires read access)"""
    return service.get_branch(branch_id)


@router.put("/{branch_id}", response_model=BranchResponse)
async def update_branch(
    branch_id: str,
    branch_data: BranchUpdate,
    user_data: Dict = Depends(require_branch_permission("can_update")),
    service: BranchService = Depends(get_branch_service)
):
    """Update branch (owner or admin)"""
    return service.update_branch(branch_id, branch_data)


@router.delete("/{branch_id}", status_code=204)
async def delete_branch(
    branch_id: str,
    user_data: Dict = Depends(require_branch_permission("can_delete")),
    service: BranchService = Depends(get_branch_service)
):
    """Delete branch (owner only)"""
    service.delete_branch(branch_id)
    return None


@router.get("/{branch_id}/permissions", response_model=BranchPermissions)
async def get_my_branch_permissions(
    branch_id: str,
    user_data: Dict = Depends(get_current_user_id),
    rbac: RBACService = Depends(get_rbac_service)
):
    """The caller's resolved role and permission flags for this branch"""
    return rbac.get_branch_permissions(user_data["id"], branch_id)


@router.get("/{branch_id}/members", response_model=List[BranchMemberResponse])
async def list_members(
    branch_id: str,
    user_data: Dict = Depends(require_branch_permission("can_read")),
    service: BranchService = Depends(get_branch_service)
):
    """List active members of a branch"""
    return service.list_members(branch_id)


@router.post("/{branch_id}/members", response_model=BranchMemberResponse, status_code=201)
async def add_member(
    branch_id: str,
    member_data: BranchMemberAdd,
    user_data: Dict = Depends(require_branch_permission("can_manage_members")),
    service: BranchService = Depends(get_branch_service),
    supabase: Client = Depends(get_supabase)
):
    """Add a member to the branch (only owners may add owners)"""
    if member_data.role == "owner":
        check_branch_permission(branch_id, user_data, supabase, "is_owner")
    return service.add_member(branch_id, member_data, user_data["id"])


@router.put("/{branch_id}/members/{user_id}", response_model=BranchMemberResponse)
async def update_member_role(
    branch_id: str,
    user_id: str,
    role_data: BranchMemberRoleUpdate,
    user_data: Dict = Depends(require_branch_permission("can_manage_members")),
    service: BranchService = Depends(get_branch_service),
    supabase: Client = Depends(get_supabase)
):
    """Change a member's role (only owners may grant or take away owner)"""
    if role_data.role == "owner" or get_user_branch_role(supabase, user_id, branch_id) == "owner":
        check_branch_permission(branch_id, user_data, supabase, "is_owner")
    if user_id == service.get_branch(branch_id).created_by:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The branch creator's role cannot be changed")
    return service.update_member_role(branch_id, user_id, role_data.role, user_data["id"])


@router.delete("/{branch_id}/members/{user_id}", status_code=204)
async def remove_member(
    branch_id: str,
    user_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: BranchService = Depends(get_branch_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a member (member manager, or the member leaving on their own)"""
    if user_id != user_data["id"]:
        check_branch_permission(branch_id, user_data, supabase, "can_manage_members")
        if get_user_branch_role(supabase, user_id, branch_id) == "owner":
            check_branch_permission(branch_id, user_data, supabase, "is_owner")
    service.remove_member(branch_id, user_id)
    return None


@router.post("/{branch_id}/cross-tree-access", response_model=CrossTreeAccessResponse, status_code=201)
async def grant_cross_tree_access(
    branch_id: str,
    access_data: CrossTreeAccessCreate,
    user_data: Dict = Depends(require_branch_permission("can_manage_members")),
    service: BranchService = Depends(get_branch_service)
):
    """Share this branch with the members of another tree"""
    return service.grant_cross_tree_access(branch_id, access_data.tree_id, user_data["id"], access_data.permissions)


@router.get("/{branch_id}/cross-tree-access", response_model=List[CrossTreeAccessResponse])
async def list_cross_tree_access(
    branch_id: str,
    user_data: Dict = Depends(require_branch_permission("can_manage_members")),
    service: BranchService = Depends(get_branch_service)
):
    """List active cross-tree grants for this branch"""
    return service.list_cross_tree_access(branch_id)


@router.delete("/{branch_id}/cross-tree-access/{access_id}", status_code=204)
async def revoke_cross_tree_access(
    branch_id: str,
    access_id: str,
    user_data: Dict = Depends(require_branch_permission("can_manage_members")),
    service: BranchService = Depends(get_branch_service)
):
    """Revoke a cross-tree grant"""
    service.revoke_cross_tree_access(branch_id, access_id)
    return None
