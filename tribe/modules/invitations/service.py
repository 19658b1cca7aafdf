from supabase import Client
from tribe.modules.invitations.schemas import InvitationCreate, InvitationResponse
from tribe.modules.trees.schemas import TreeMemberAdd
from tribe.modules.trees.service import TreeService
from tribe.modules.branches.schemas import BranchMemberAdd
from tribe.modules.branches.service import BranchService
from tribe.core.dependencies import get_tree_member_role
from tribe.config import settings
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException
import logging
import secrets

logger = logging.getLogger(__name__)

INVITATION_TABLES = {
    "tree": ("invitations", "tree_id"),
    "branch": ("branch_invitations", "branch_id"),
}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _parse_timestamp(value: Any) -> datetime:
    parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_response(invitation_type: str, row: Dict[str, Any]) -> InvitationResponse:
    return InvitationResponse(type=invitation_type, **row)


class InvitationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def create_invitation(self, invitation: InvitationCreate, invited_by: str) -> InvitationResponse:
        """Create a pending tree or branch invitation with a fresh token"""
        invitation_type = invitation.invitation_type
        table, target_column = INVITATION_TABLES[invitation_type]
        target_id = invitation.branch_id or invitation.tree_id
        email = normalize_email(invitation.email)
        try:
            existing = self.supabase.table(table)\
                .select("id")\
                .eq(target_column, target_id)\
                .eq("email", email)\
                .eq("status", "pending")\
                .execute()
            if existing.data:
                raise HTTPException(status_code=400, detail="An invitation for this email already exists")

            now = datetime.now(timezone.utc)
            result = self.supabase.table(table).insert({
                target_column: target_id,
                "email": email,
                "role": invitation.role,
                "token": secrets.token_urlsafe(32),
                "invited_by": invited_by,
                "message": invitation.message,
                "status": "pending",
                "expires_at": (now + timedelta(days=settings.invitation_ttl_days)).isoformat()
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create invitation")

            logger.info(f"{invitation_type.capitalize()} invitation created for {target_id} by {invited_by}")
            return _to_response(invitation_type, result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_pending(self, invitation_type: str, target_id: str) -> List[InvitationResponse]:
        table, target_column = INVITATION_TABLES[invitation_type]
        try:
            result = self.supabase.table(table)\
                .select("*")\
                .eq(target_column, target_id)\
                .eq("status", "pending")\
                .order("created_at", desc=True)\
                .execute()
            return [_to_response(invitation_type, row) for row in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_by_token(self, token: str) -> InvitationResponse:
        """Look the token up in tree invitations, then branch invitations"""
        found = self._find_by_token(token)
        if not found:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return _to_response(*found)

    def _find_by_token(self, token: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        try:
            for invitation_type, (table, _) in INVITATION_TABLES.items():
                result = self.supabase.table(table)\
                    .select("*")\
                    .eq("token", token)\
                    .limit(1)\
                    .execute()
                if result.data:
                    return invitation_type, result.data[0]
            return None
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _check_open(self, invitation: InvitationResponse, user_email: Optional[str]) -> None:
        if invitation.status != "pending":
            raise HTTPException(status_code=400, detail=f"Invitation already {invitation.status}")
        if _parse_timestamp(invitation.expires_at) <= datetime.now(timezone.utc):
            raise HTTPException(status_code=400, detail="Invitation has expired")
        if not user_email or normalize_email(user_email) != invitation.email:
            raise HTTPException(status_code=403, detail="This invitation was sent to a different email address")

    def _set_status(self, invitation: InvitationResponse, status: str) -> InvitationResponse:
        table, _ = INVITATION_TABLES[invitation.type]
        update_data = {"status": status}
        if status == "accepted":
            update_data["accepted_at"] = datetime.now(timezone.utc).isoformat()
        result = self.supabase.table(table)\
            .update(update_data)\
            .eq("id", invitation.id)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Invitation not found")
        return _to_response(invitation.type, result.data[0])

    def accept(self, token: str, user_id: str, user_email: Optional[str]) -> InvitationResponse:
        """Join the invited tree or branch with the invited role"""
        invitation = self.get_by_token(token)
        self._check_open(invitation, user_email)
        try:
            if invitation.type == "tree":
                if get_tree_member_role(invitation.tree_id, user_id, self.supabase) is None:
                    TreeService(self.supabase).add_member(
                        invitation.tree_id,
                        TreeMemberAdd(user_id=user_id, role=invitation.role),
                        invitation.invited_by
                    )
            else:
                existing = self.supabase.table("branch_members")\
                    .select("id")\
                    .eq("branch_id", invitation.branch_id)\
                    .eq("user_id", user_id)\
                    .execute()
                if not existing.data:
                    BranchService(self.supabase).add_member(
                        invitation.branch_id,
                        BranchMemberAdd(user_id=user_id, role=invitation.role, join_method="invited"),
                        invitation.invited_by
                    )

            logger.info(f"Invitation {invitation.id} accepted by {user_id}")
            return self._set_status(invitation, "accepted")
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def decline(self, token: str, user_email: Optional[str]) -> InvitationResponse:
        invitation = self.get_by_token(token)
        self._check_open(invitation, user_email)
        try:
            return self._set_status(invitation, "declined")
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
