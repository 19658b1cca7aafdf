from fastapi import APIRouter, Depends
from tribe.database.supabase_client import get_supabase
from tribe.modules.trees.schemas import (
    TreeCreate, TreeUpdate, TreeResponse, UserTreeResponse,
    TreeMemberAdd, TreeMemberRoleUpdate, TreeMemberResponse,
    PrimaryTreeResponse, TreeStatsResponse
)
from tribe.modules.trees.service import TreeService
from tribe.core.dependencies import (
    get_current_user_id, get_tree_member_role, check_tree_member, check_tree_admin, check_tree_owner
)
from fastapi import HTTPException, status
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/trees", tags=["trees"])


def get_tree_service(supabase: Client = Depends(get_supabase)) -> TreeService:
    return TreeService(supabase)


@router.post("", response_model=TreeResponse, status_code=201)
async def create_tree(
    tree_data: TreeCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service)
):
    """Create a new tree (household); the caller becomes its owner"""
    return service.create_tree(tree_data, user_data["id"])


@router.get("", response_model=List[UserTreeResponse])
async def list_my_trees(
    include_archived: bool = False,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service)
):
    """List the trees the caller belongs to, earliest joined first"""
    return service.list_user_trees(user_data["id"], include_archived=include_archived)


@router.get("/primary", response_model=PrimaryTreeResponse)
async def get_primary_tree(
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service)
):
    """The caller's primary tree: owned, then administered, then earliest joined"""
    return PrimaryTreeResponse(tree_id=service.get_primary_tree_id(user_data["id"]))


@router.get("/{tree_id}", response_model=TreeResponse)
async def get_tree(
    tree_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Get tree by ID (only if user is a member)"""
    check_tree_member(tree_id, user_data, supabase)
    return service.get_tree(tree_id)


@router.put("/{tree_id}", response_model=TreeResponse)
async def update_tree(
    tree_id: str,
    tree_data: TreeUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Update tree (requires tree admin)"""
    check_tree_admin(tree_id, user_data, supabase)
    return service.update_tree(tree_id, tree_data)


@router.post("/{tree_id}/archive", response_model=TreeResponse)
async def archive_tree(
    tree_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Archive tree (requires tree owner)"""
    check_tree_owner(tree_id, user_data, supabase)
    return service.set_active(tree_id, False)


@router.post("/{tree_id}/restore", response_model=TreeResponse)
async def restore_tree(
    tree_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Restore an archived tree (requires tree owner)"""
    check_tree_owner(tree_id, user_data, supabase)
    return service.set_active(tree_id, True)


@router.delete("/{tree_id}", status_code=204)
async def delete_tree(
    tree_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete tree (requires tree owner)"""
    check_tree_owner(tree_id, user_data, supabase)
    service.delete_tree(tree_id)
    return None


@router.get("/{tree_id}/stats", response_model=TreeStatsResponse)
async def get_tree_stats(
    tree_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Member, branch and leaf statistics (only if user is a member)"""
    check_tree_member(tree_id, user_data, supabase)
    return service.get_stats(tree_id)


@router.get("/{tree_id}/members", response_model=List[TreeMemberResponse])
async def list_members(
    tree_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """List all members of a tree (only if user is a member)"""
    check_tree_member(tree_id, user_data, supabase)
    return service.list_members(tree_id)


@router.post("/{tree_id}/members", response_model=TreeMemberResponse, status_code=201)
async def add_member(
    tree_id: str,
    member_data: TreeMemberAdd,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Add a member to the tree (requires tree admin; only owners may add owners)"""
    check_tree_admin(tree_id, user_data, supabase)
    if member_data.role == "owner":
        check_tree_owner(tree_id, user_data, supabase)
    return service.add_member(tree_id, member_data, user_data["id"])


@router.put("/{tree_id}/members/{user_id}", response_model=TreeMemberResponse)
async def update_member_role(
    tree_id: str,
    user_id: str,
    role_data: TreeMemberRoleUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Change a member's role (requires tree admin; only owners may grant or take away owner)"""
    check_tree_admin(tree_id, user_data, supabase)
    if role_data.role == "owner" or get_tree_member_role(tree_id, user_id, supabase) == "owner":
        check_tree_owner(tree_id, user_data, supabase)
    if user_id == service.get_tree(tree_id).created_by:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="The tree creator's role cannot be changed")
    return service.update_member_role(tree_id, user_id, role_data.role, user_data["id"])


@router.delete("/{tree_id}/members/{user_id}", status_code=204)
async def remove_member(
    tree_id: str,
    user_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: TreeService = Depends(get_tree_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a member (tree admin, or the member leaving on their own)"""
    if user_id != user_data["id"]:
        check_tree_admin(tree_id, user_data, supabase)
        if get_tree_member_role(tree_id, user_id, supabase) == "owner":
            check_tree_owner(tree_id, user_data, supabase)
    service.remove_member(tree_id, user_id)
    return None
