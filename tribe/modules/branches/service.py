from supabase import Client
from tribe.modules.branches.schemas import (
    BranchCreate, BranchUpdate, BranchResponse,
    BranchMemberAdd, BranchMemberResponse, CrossTreeAccessResponse
)
from tribe.modules.roles.schemas import RBACContext
from tribe.core.rbac import (
    RBACService, create_cross_tree_access, get_cross_tree_access, revoke_cross_tree_access
)
from typing import Dict, List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class BranchService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.rbac = RBACService(supabase)

    def create_branch(self, branch_data: BranchCreate, user_id: str) -> BranchResponse:
        """Create a branch inside a tree; the creator becomes its owner"""
        try:
            result = self.supabase.table("branches").insert({
                "tree_id": branch_data.tree_id,
                "name": branch_data.name,
                "description": branch_data.description,
                "color": branch_data.color,
                "type": "family",
                "privacy": branch_data.privacy,
                "category": branch_data.category,
                "location": branch_data.location,
                "created_by": user_id,
                "member_count": 1  # Creator is automatically a member
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create branch")

            branch = result.data[0]
            now = datetime.now(timezone.utc).isoformat()
            self.supabase.table("branch_members").insert({
                "branch_id": branch["id"],
                "user_id": user_id,
                "role": "owner",
                "join_method": "admin_added",
                "joined_via": user_id,
                "status": "active",
                "approved_at": now
            }).execute()
            self.rbac.assign_role(user_id, "owner", RBACContext(type="branch", id=branch["id"]), user_id)

            logger.info(f"Branch {branch['id']} created in tree {branch_data.tree_id} by {user_id}")
            return BranchResponse(**branch)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_branch(self, branch_id: str) -> BranchResponse:
        """Get branch by ID"""
        try:
            result = self.supabase.table("branches")\
                .select("*")\
                .eq("id", branch_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Branch not found")

            return BranchResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_branch(self, branch_id: str, branch_data: BranchUpdate) -> BranchResponse:
        """Update branch"""
        try:
            update_data = branch_data.model_dump(exclude_none=True)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("branches")\
                .update(update_data)\
                .eq("id", branch_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Branch not found")

            return BranchResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_branch(self, branch_id: str) -> bool:
        """Delete branch with its members, role assignments and cross-tree grants"""
        try:
            members = self.supabase.table("branch_members")\
                .select("user_id")\
                .eq("branch_id", branch_id)\
                .execute()

            self.supabase.table("branch_members")\
                .delete()\
                .eq("branch_id", branch_id)\
                .execute()

            self.supabase.table("user_roles")\
                .delete()\
                .eq("context_type", "branch")\
                .eq("context_id", branch_id)\
                .execute()

            self.supabase.table("cross_tree_access")\
                .delete()\
                .eq("branch_id", branch_id)\
                .execute()

            result = self.supabase.table("branches")\
                .delete()\
                .eq("id", branch_id)\
                .execute()

            for member in members.data or []:
                self.rbac.clear_cache(member["user_id"])

            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_tree_branches(self, tree_id: str, limit: int = 20, offset: int = 0) -> List[BranchResponse]:
        """Branches of a tree, newest first"""
        try:
            result = self.supabase.table("branches")\
                .select("*")\
                .eq("tree_id", tree_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [BranchResponse(**branch) for branch in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_user_branches(self, user_id: str) -> List[BranchResponse]:
        """Branches where the user is an active member"""
        try:
            members_result = self.supabase.table("branch_members")\
                .select("branch_id")\
                .eq("user_id", user_id)\
                .eq("status", "active")\
                .execute()
            if not members_result.data:
                return []
            branch_ids = [m["branch_id"] for m in members_result.data]
            result = self.supabase.table("branches")\
                .select("*")\
                .in_("id", branch_ids)\
                .order("created_at", desc=True)\
                .execute()
            return [BranchResponse(**branch) for branch in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_members(self, branch_id: str) -> List[BranchMemberResponse]:
        """Active members of a branch, newest first"""
        try:
            result = self.supabase.table("branch_members")\
                .select("*")\
                .eq("branch_id", branch_id)\
                .eq("status", "active")\
                .order("added_at", desc=True)\
                .execute()
            return [BranchMemberResponse(**member) for member in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_member(self, branch_id: str, member_data: BranchMemberAdd, added_by: Optional[str]) -> BranchMemberResponse:
        """Add a member and grant the matching RBAC role"""
        try:
            branch = self.get_branch(branch_id)

            existing = self.supabase.table("branch_members")\
                .select("id")\
                .eq("branch_id", branch_id)\
                .eq("user_id", member_data.user_id)\
                .execute()

            if existing.data:
                raise HTTPException(status_code=400, detail="User already a member of this branch")

            result = self.supabase.table("branch_members").insert({
                "branch_id": branch_id,
                "user_id": member_data.user_id,
                "role": member_data.role,
                "join_method": member_data.join_method,
                "joined_via": added_by,
                "status": "active",
                "approved_at": datetime.now(timezone.utc).isoformat()
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add member")

            self.supabase.table("branches")\
                .update({"member_count": branch.member_count + 1})\
                .eq("id", branch_id)\
                .execute()
            self.rbac.assign_role(member_data.user_id, member_data.role, RBACContext(type="branch", id=branch_id), added_by)
            return BranchMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_member_role(self, branch_id: str, user_id: str, role: str, granted_by: Optional[str]) -> BranchMemberResponse:
        """Change a member's role; the RBAC assignment is replaced"""
        try:
            result = self.supabase.table("branch_members")\
                .update({"role": role})\
                .eq("branch_id", branch_id)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Member not found")

            context = RBACContext(type="branch", id=branch_id)
            self.rbac.remove_role(user_id, context)
            self.rbac.assign_role(user_id, role, context, granted_by)
            return BranchMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_member(self, branch_id: str, user_id: str) -> bool:
        """Remove a member; the branch creator cannot be removed"""
        try:
            branch = self.get_branch(branch_id)
            if branch.created_by == user_id:
                raise HTTPException(status_code=400, detail="The branch creator cannot be removed")

            result = self.supabase.table("branch_members")\
                .delete()\
                .eq("branch_id", branch_id)\
                .eq("user_id", user_id)\
                .execute()

            if result.data:
                self.supabase.table("branches")\
                    .update({"member_count": max(branch.member_count - 1, 0)})\
                    .eq("id", branch_id)\
                    .execute()

            self.rbac.remove_role(user_id, RBACContext(type="branch", id=branch_id))
            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def grant_cross_tree_access(
        self, branch_id: str, tree_id: str, invited_by: str, permissions: Dict[str, bool]
    ) -> CrossTreeAccessResponse:
        """Let members of tree_id see this branch"""
        branch = self.get_branch(branch_id)
        if branch.tree_id == tree_id:
            raise HTTPException(status_code=400, detail="A branch's own tree already has access")

        tree_result = self.supabase.table("trees")\
            .select("id")\
            .eq("id", tree_id)\
            .limit(1)\
            .execute()
        if not tree_result.data:
            raise HTTPException(status_code=404, detail="Tree not found")

        access = create_cross_tree_access(self.supabase, branch_id, tree_id, invited_by, permissions)
        if not access:
            raise HTTPException(status_code=500, detail="Failed to create cross-tree access")
        return CrossTreeAccessResponse(**access)

    def list_cross_tree_access(self, branch_id: str) -> List[CrossTreeAccessResponse]:
        return [CrossTreeAccessResponse(**a) for a in get_cross_tree_access(self.supabase, branch_id)]

    def revoke_cross_tree_access(self, branch_id: str, access_id: str) -> bool:
        """Revoke a grant belonging to this branch"""
        existing = self.supabase.table("cross_tree_access")\
            .select("id")\
            .eq("id", access_id)\
            .eq("branch_id", branch_id)\
            .limit(1)\
            .execute()
        if not existing.data:
            raise HTTPException(status_code=404, detail="Cross-tree access not found")
        if not revoke_cross_tree_access(self.supabase, access_id):
            raise HTTPException(status_code=500, detail="Failed to revoke cross-tree access")
        return True
