from fastapi import APIRouter, Depends, HTTPException, status
from tribe.database.supabase_client import get_supabase
from tribe.modules.invitations.schemas import InvitationCreate, InvitationResponse
from tribe.modules.invitations.service import InvitationService
from tribe.core.dependencies import get_current_user_id, check_tree_admin, check_tree_owner, check_branch_permission
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/invitations", tags=["invitations"])


def get_invitation_service(supabase: Client = Depends(get_supabase)) -> InvitationService:
    return InvitationService(supabase)


def _check_can_invite(tree_id: Optional[str], branch_id: Optional[str], role: Optional[str], user_data: Dict, supabase: Client) -> None:
    """Tree admins invite to trees; branch members with can_invite_members invite to branches"""
    if branch_id:
        check_branch_permission(branch_id, user_data, supabase, "can_invite_members")
        if role == "owner":
            check_branch_permission(branch_id, user_data, supabase, "is_owner")
    else:
        check_tree_admin(tree_id, user_data, supabase)
        if role == "owner":
            check_tree_owner(tree_id, user_data, supabase)


@router.post("", response_model=InvitationResponse, status_code=201)
async def create_invitation(
    invitation: InvitationCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """Invite someone by email to a tree or a branch"""
    _check_can_invite(invitation.tree_id, invitation.branch_id, invitation.role, user_data, supabase)
    return service.create_invitation(invitation, user_data["id"])


@router.get("", response_model=List[InvitationResponse])
async def list_pending_invitations(
    tree_id: Optional[str] = None,
    branch_id: Optional[str] = None,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service),
    supabase: Client = Depends(get_supabase)
):
    """Pending invitations for a tree or a branch"""
    if bool(tree_id) == bool(branch_id):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Provide exactly one of tree_id or branch_id")
    _check_can_invite(tree_id, branch_id, None, user_data, supabase)
    if branch_id:
        return service.list_pending("branch", branch_id)
    return service.list_pending("tree", tree_id)


@router.get("/token/{token}", response_model=InvitationResponse)
async def get_invitation(
    token: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.get_by_token(token)


@router.post("/token/{token}/accept", response_model=InvitationResponse)
async def accept_invitation(
    token: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    """Accept an invitation addressed to the caller's email"""
    return service.accept(token, user_data["id"], user_data.get("email"))


@router.post("/token/{token}/decline", response_model=InvitationResponse)
async def decline_invitation(
    token: str,
    user_data: Dict = Depends(get_current_user_id),
    service: InvitationService = Depends(get_invitation_service)
):
    return service.decline(token, user_data.get("email"))
