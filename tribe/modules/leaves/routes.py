from fastapi import APIRouter, Depends, HTTPException, Header, Query, Security, UploadFile, File, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from tribe.config import settings
from tribe.database.supabase_client import get_supabase
from tribe.modules.leaves.schemas import (
    LeafCreate, UnassignedLeafCreate, LeafUpdate, LeafResponse, LeafAssign,
    ReactionCreate, ReactionResponse, CommentCreate, CommentResponse,
    LeafShareRequest, LeafShareResponse, MilestoneResponse, MediaUploadResponse
)
from tribe.modules.leaves.service import LeafService
from tribe.modules.auth.service import AuthService
from tribe.modules.profiles.service import ProfileService
from tribe.core.dependencies import (
    get_current_user_id, get_auth_service, get_user_tree_ids,
    check_tree_member, check_branch_permission, require_branch_permission
)
from tribe.core.rbac import RBACService
from supabase import Client
from typing import List, Dict, Optional
import logging
import secrets

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/leaves", tags=["leaves"])

optional_security = HTTPBearer(auto_error=False)

MAX_PAGE_SIZE = 100


def get_leaf_service(supabase: Client = Depends(get_supabase)) -> LeafService:
    return LeafService(supabase)


def _page(limit: int, offset: int):
    return min(max(limit, 1), MAX_PAGE_SIZE), max(offset, 0)


def _has_branch_flag(leaf: LeafResponse, user_id: str, supabase: Client, flag: str) -> bool:
    if not leaf.branch_id:
        return False
    permissions = RBACService(supabase).get_branch_permissions(user_id, leaf.branch_id)
    return bool(getattr(permissions, flag, False))


def _check_leaf_read(leaf: LeafResponse, user_id: str, supabase: Client, service: LeafService) -> None:
    """Author, readers of the leaf's branch, or readers of a branch it was shared with"""
    if leaf.author_id == user_id or _has_branch_flag(leaf, user_id, supabase, "can_read"):
        return
    rbac = RBACService(supabase)
    for branch_id in service.get_shared_branch_ids(leaf.id):
        if rbac.get_branch_permissions(user_id, branch_id).can_read:
            return
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You do not have access to this leaf")


def _check_leaf_author(leaf: LeafResponse, user_id: str) -> None:
    if leaf.author_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only the author can modify this leaf")


def _readable_branch_ids(user_id: str, supabase: Client, tree_id: Optional[str] = None) -> List[str]:
    """Branches the user can read, from their trees (or just tree_id) and their direct memberships"""
    branch_ids = []
    tree_ids = [tree_id] if tree_id else get_user_tree_ids(user_id, supabase)
    if tree_ids:
        result = supabase.table("branches")\
            .select("id")\
            .in_("tree_id", tree_ids)\
            .execute()
        branch_ids.extend(b["id"] for b in result.data or [])
    if not tree_id:
        members_result = supabase.table("branch_members")\
            .select("branch_id")\
            .eq("user_id", user_id)\
            .eq("status", "active")\
            .execute()
        branch_ids.extend(m["branch_id"] for m in members_result.data or [])
    # Tree membership alone does not open private branches
    rbac = RBACService(supabase)
    return [
        branch_id for branch_id in dict.fromkeys(branch_ids)
        if rbac.get_branch_permissions(user_id, branch_id).can_read
    ]


@router.post("", response_model=LeafResponse, status_code=201)
async def create_leaf(
    leaf_data: LeafCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Create a leaf in a branch (requires can_create_posts)"""
    check_branch_permission(leaf_data.branch_id, user_data, supabase, "can_create_posts")
    return service.create_leaf(leaf_data, user_data["id"])


@router.post("/unassigned", response_model=LeafResponse, status_code=201)
async def create_unassigned_leaf(
    leaf_data: UnassignedLeafCreate,
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
    credentials: Optional[HTTPAuthorizationCredentials] = Security(optional_security),
    auth_service: AuthService = Depends(get_auth_service),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Create an unassigned leaf as the signed-in user, or from a webhook with X-API-Key and author_id"""
    if x_api_key is not None:
        if not settings.webhook_api_key or not secrets.compare_digest(x_api_key, settings.webhook_api_key):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid API key")
        if not leaf_data.author_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="author_id is required for webhook requests")
        if not ProfileService(supabase).find_profile(leaf_data.author_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Author not found")
        logger.info(f"Webhook leaf received for author {leaf_data.author_id}")
        return service.create_unassigned_leaf(leaf_data, leaf_data.author_id)

    if credentials is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    user_data = auth_service.get_current_user(credentials.credentials)
    return service.create_unassigned_leaf(leaf_data, user_data["id"])


@router.get("/mine", response_model=List[LeafResponse])
async def list_my_leaves(
    unassigned_only: bool = False,
    limit: int = 20,
    offset: int = 0,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service)
):
    """Leaves authored by the caller"""
    limit, offset = _page(limit, offset)
    return service.list_user_leaves(user_data["id"], unassigned_only, limit, offset)


@router.get("/search", response_model=List[LeafResponse])
async def search_leaves(
    q: str = "",
    tree_id: Optional[str] = None,
    branch_id: Optional[str] = None,
    leaf_type: Optional[List[str]] = Query(None),
    season: Optional[List[str]] = Query(None),
    milestone_type: Optional[List[str]] = Query(None),
    tag: Optional[List[str]] = Query(None),
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Search leaves the caller can read (at most 50, newest first)"""
    branch_scope = None
    if branch_id:
        check_branch_permission(branch_id, user_data, supabase, "can_read")
    elif tree_id:
        check_tree_member(tree_id, user_data, supabase)
        branch_scope = _readable_branch_ids(user_data["id"], supabase, tree_id)
    else:
        branch_scope = _readable_branch_ids(user_data["id"], supabase)

    return service.search_leaves(
        query=q,
        tree_id=tree_id,
        branch_id=branch_id,
        leaf_types=leaf_type,
        seasons=season,
        milestone_types=milestone_type,
        tags=tag,
        date_from=date_from,
        date_to=date_to,
        branch_scope=branch_scope
    )


@router.get("/milestones", response_model=List[MilestoneResponse])
async def list_milestones(
    category: Optional[str] = None,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service)
):
    """Milestone catalogue, optionally for one category"""
    return service.list_milestones(category)


@router.get("/tree/{tree_id}", response_model=List[LeafResponse])
async def list_tree_leaves(
    tree_id: str,
    limit: int = 20,
    offset: int = 0,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Leaves across the tree branches the caller can read"""
    check_tree_member(tree_id, user_data, supabase)
    limit, offset = _page(limit, offset)
    branch_ids = _readable_branch_ids(user_data["id"], supabase, tree_id)
    return service.list_branches_leaves(branch_ids, limit, offset)


@router.get("/branch/{branch_id}", response_model=List[LeafResponse])
async def list_branch_leaves(
    branch_id: str,
    limit: int = 20,
    offset: int = 0,
    user_data: Dict = Depends(require_branch_permission("can_read")),
    service: LeafService = Depends(get_leaf_service)
):
    """Leaves posted in or shared with a branch"""
    limit, offset = _page(limit, offset)
    return service.list_branch_leaves(branch_id, limit, offset)


@router.get("/{leaf_id}", response_model=LeafResponse)
async def get_leaf(
    leaf_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    leaf = service.get_leaf(leaf_id)
    _check_leaf_read(leaf, user_data["id"], supabase, service)
    return leaf


@router.put("/{leaf_id}", response_model=LeafResponse)
async def update_leaf(
    leaf_id: str,
    leaf_data: LeafUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service)
):
    """Update a leaf (author only)"""
    _check_leaf_author(service.get_leaf(leaf_id), user_data["id"])
    return service.update_leaf(leaf_id, leaf_data)


@router.delete("/{leaf_id}", status_code=204)
async def delete_leaf(
    leaf_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete a leaf (author or branch moderator)"""
    leaf = service.get_leaf(leaf_id)
    if leaf.author_id != user_data["id"] and not _has_branch_flag(leaf, user_data["id"], supabase, "can_moderate"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions. Required: can_moderate")
    service.delete_leaf(leaf_id)
    return None


@router.post("/{leaf_id}/assign", response_model=LeafResponse)
async def assign_leaf(
    leaf_id: str,
    assignment: LeafAssign,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Move one of the caller's leaves into a branch they can post in"""
    _check_leaf_author(service.get_leaf(leaf_id), user_data["id"])
    check_branch_permission(assignment.branch_id, user_data, supabase, "can_create_posts")
    return service.assign_leaf(leaf_id, assignment.branch_id)


@router.post("/{leaf_id}/media", response_model=MediaUploadResponse, status_code=201)
async def upload_media(
    leaf_id: str,
    files: List[UploadFile] = File(...),
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service)
):
    """Upload photos, video or audio for a leaf (author only)"""
    leaf = service.get_leaf(leaf_id)
    _check_leaf_author(leaf, user_data["id"])
    payload = [(f.filename, await f.read(), f.content_type) for f in files]
    return MediaUploadResponse(leaf_id=leaf_id, urls=service.upload_media(leaf, payload))


@router.get("/{leaf_id}/reactions", response_model=List[ReactionResponse])
async def list_reactions(
    leaf_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    _check_leaf_read(service.get_leaf(leaf_id), user_data["id"], supabase, service)
    return service.list_reactions(leaf_id)


@router.put("/{leaf_id}/reactions", response_model=ReactionResponse)
async def react_to_leaf(
    leaf_id: str,
    reaction: ReactionCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Add or replace the caller's reaction"""
    _check_leaf_read(service.get_leaf(leaf_id), user_data["id"], supabase, service)
    return service.add_reaction(leaf_id, user_data["id"], reaction.reaction_type)


@router.delete("/{leaf_id}/reactions", status_code=204)
async def remove_reaction(
    leaf_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service)
):
    service.remove_reaction(leaf_id, user_data["id"])
    return None


@router.get("/{leaf_id}/comments", response_model=List[CommentResponse])
async def list_comments(
    leaf_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    _check_leaf_read(service.get_leaf(leaf_id), user_data["id"], supabase, service)
    return service.list_comments(leaf_id)


@router.post("/{leaf_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    leaf_id: str,
    comment: CommentCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Comment on a leaf (author, or anyone who can post in its branch)"""
    leaf = service.get_leaf(leaf_id)
    if leaf.author_id != user_data["id"] and not _has_branch_flag(leaf, user_data["id"], supabase, "can_create_posts"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions. Required: can_create_posts")
    return service.add_comment(leaf, user_data["id"], comment.content)


@router.delete("/{leaf_id}/comments/{comment_id}", status_code=204)
async def delete_comment(
    leaf_id: str,
    comment_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete a comment (its author or a branch moderator)"""
    comment = service.get_comment(leaf_id, comment_id)
    if comment.author_id != user_data["id"]:
        leaf = service.get_leaf(leaf_id)
        if not _has_branch_flag(leaf, user_data["id"], supabase, "can_moderate"):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions. Required: can_moderate")
    service.delete_comment(comment_id)
    return None


@router.put("/{leaf_id}/shares", response_model=List[LeafShareResponse])
async def share_leaf(
    leaf_id: str,
    share: LeafShareRequest,
    user_data: Dict = Depends(get_current_user_id),
    service: LeafService = Depends(get_leaf_service),
    supabase: Client = Depends(get_supabase)
):
    """Replace the set of branches a leaf is shared with (author only)"""
    _check_leaf_author(service.get_leaf(leaf_id), user_data["id"])
    for branch_id in share.branch_ids:
        check_branch_permission(branch_id, user_data, supabase, "can_create_posts")
    return service.share_with_branches(leaf_id, share.branch_ids, user_data["id"])
