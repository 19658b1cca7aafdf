from supabase import Client
from tribe.modules.trees.schemas import (
    TreeCreate, TreeUpdate, TreeResponse, UserTreeResponse,
    TreeMemberAdd, TreeMemberResponse, TreeStatsResponse, LeafStats
)
from tribe.modules.roles.schemas import RBACContext
from tribe.modules.leaves.service import compute_leaf_stats
from tribe.modules.branches.service import BranchService
from tribe.core.rbac import RBACService
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class TreeService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.rbac = RBACService(supabase)

    def create_tree(self, tree_data: TreeCreate, user_id: str) -> TreeResponse:
        """Create a new tree; the creator becomes its owner"""
        try:
            result = self.supabase.table("trees").insert({
                "name": tree_data.name,
                "description": tree_data.description,
                "created_by": user_id,
                "is_active": True,
                "settings": tree_data.settings or {}
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create tree")

            tree = result.data[0]
            self.supabase.table("tree_members").insert({
                "tree_id": tree["id"],
                "user_id": user_id,
                "role": "owner"
            }).execute()
            self.rbac.assign_role(user_id, "owner", RBACContext(type="tree", id=tree["id"]), user_id)

            logger.info(f"Tree {tree['id']} created by {user_id}")
            return TreeResponse(**tree)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_tree(self, tree_id: str) -> TreeResponse:
        """Get tree by ID"""
        try:
            result = self.supabase.table("trees")\
                .select("*")\
                .eq("id", tree_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Tree not found")

            return TreeResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_tree(self, tree_id: str, tree_data: TreeUpdate) -> TreeResponse:
        """Update tree"""
        try:
            update_data = tree_data.model_dump(exclude_none=True)
            return self._write_tree(tree_id, update_data)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_active(self, tree_id: str, is_active: bool) -> TreeResponse:
        """Archive (False) or restore (True) a tree"""
        try:
            return self._write_tree(tree_id, {"is_active": is_active})
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _write_tree(self, tree_id: str, update_data: dict) -> TreeResponse:
        update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
        result = self.supabase.table("trees")\
            .update(update_data)\
            .eq("id", tree_id)\
            .execute()

        if not result.data:
            raise HTTPException(status_code=404, detail="Tree not found")

        return TreeResponse(**result.data[0])

    def delete_tree(self, tree_id: str) -> bool:
        """Delete tree with its branches, memberships, role assignments and cross-tree grants"""
        try:
            branches = self.supabase.table("branches")\
                .select("id")\
                .eq("tree_id", tree_id)\
                .execute()
            branch_service = BranchService(self.supabase)
            for branch in branches.data or []:
                branch_service.delete_branch(branch["id"])

            self.supabase.table("cross_tree_access")\
                .delete()\
                .eq("tree_id", tree_id)\
                .execute()

            members = self.supabase.table("tree_members")\
                .select("user_id")\
                .eq("tree_id", tree_id)\
                .execute()

            self.supabase.table("tree_members")\
                .delete()\
                .eq("tree_id", tree_id)\
                .execute()

            self.supabase.table("user_roles")\
                .delete()\
                .eq("context_type", "tree")\
                .eq("context_id", tree_id)\
                .execute()

            result = self.supabase.table("trees")\
                .delete()\
                .eq("id", tree_id)\
                .execute()

            for member in members.data or []:
                self.rbac.clear_cache(member["user_id"])

            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_user_trees(self, user_id: str, include_archived: bool = False) -> List[UserTreeResponse]:
        """Trees the user belongs to, earliest joined first"""
        try:
            members_result = self.supabase.table("tree_members")\
                .select("tree_id, role, joined_at")\
                .eq("user_id", user_id)\
                .order("joined_at")\
                .execute()
            if not members_result.data:
                return []

            tree_ids = [m["tree_id"] for m in members_result.data]
            trees_result = self.supabase.table("trees")\
                .select("*")\
                .in_("id", tree_ids)\
                .execute()
            trees_by_id = {t["id"]: t for t in trees_result.data or []}

            user_trees = []
            for membership in members_result.data:
                tree = trees_by_id.get(membership["tree_id"])
                if not tree:
                    continue
                if not include_archived and tree.get("is_active") is False:
                    continue
                user_trees.append(UserTreeResponse(
                    tree=TreeResponse(**tree),
                    role=membership.get("role") or "member",
                    joined_at=membership.get("joined_at")
                ))
            return user_trees
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_primary_tree_id(self, user_id: str) -> Optional[str]:
        """Owner tree first, then admin tree, else the earliest joined; None if no trees"""
        try:
            members_result = self.supabase.table("tree_members")\
                .select("tree_id, role, joined_at")\
                .eq("user_id", user_id)\
                .order("joined_at")\
                .execute()
            memberships = members_result.data or []
            if not memberships:
                return None

            for preferred in ("owner", "admin"):
                for membership in memberships:
                    if membership.get("role") == preferred:
                        return membership["tree_id"]
            return memberships[0]["tree_id"]
        except Exception as e:
            logger.error(f"Error getting user primary tree: {e}")
            return None

    def list_members(self, tree_id: str) -> List[TreeMemberResponse]:
        """List all members of a tree, newest first"""
        try:
            result = self.supabase.table("tree_members")\
                .select("*")\
                .eq("tree_id", tree_id)\
                .order("joined_at", desc=True)\
                .execute()

            return [TreeMemberResponse(**member) for member in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_member(self, tree_id: str, member_data: TreeMemberAdd, added_by: Optional[str]) -> TreeMemberResponse:
        """Add a member to the tree and grant the matching RBAC role"""
        try:
            self.get_tree(tree_id)

            existing = self.supabase.table("tree_members")\
                .select("id")\
                .eq("tree_id", tree_id)\
                .eq("user_id", member_data.user_id)\
                .execute()

            if existing.data:
                raise HTTPException(status_code=400, detail="User already a member of this tree")

            result = self.supabase.table("tree_members").insert({
                "tree_id": tree_id,
                "user_id": member_data.user_id,
                "role": member_data.role
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add member")

            self.rbac.assign_role(member_data.user_id, member_data.role, RBACContext(type="tree", id=tree_id), added_by)
            return TreeMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_member_role(self, tree_id: str, user_id: str, role: str, granted_by: Optional[str]) -> TreeMemberResponse:
        """Change a member's role; the RBAC assignment is replaced"""
        try:
            result = self.supabase.table("tree_members")\
                .update({"role": role})\
                .eq("tree_id", tree_id)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Member not found")

            context = RBACContext(type="tree", id=tree_id)
            self.rbac.remove_role(user_id, context)
            self.rbac.assign_role(user_id, role, context, granted_by)
            return TreeMemberResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_member(self, tree_id: str, user_id: str) -> bool:
        """Remove a member from the tree; the creator cannot be removed"""
        try:
            tree = self.get_tree(tree_id)
            if tree.created_by == user_id:
                raise HTTPException(status_code=400, detail="The tree creator cannot be removed")

            result = self.supabase.table("tree_members")\
                .delete()\
                .eq("tree_id", tree_id)\
                .eq("user_id", user_id)\
                .execute()

            self.rbac.remove_role(user_id, RBACContext(type="tree", id=tree_id))
            return len(result.data) > 0
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_stats(self, tree_id: str) -> TreeStatsResponse:
        """Member, branch and leaf counts for a tree"""
        try:
            members_result = self.supabase.table("tree_members")\
                .select("id")\
                .eq("tree_id", tree_id)\
                .execute()
            branches_result = self.supabase.table("branches")\
                .select("id")\
                .eq("tree_id", tree_id)\
                .execute()

            branch_ids = [b["id"] for b in branches_result.data or []]
            leaves = []
            if branch_ids:
                leaves_result = self.supabase.table("posts")\
                    .select("leaf_type, season, milestone_type, created_at")\
                    .in_("branch_id", branch_ids)\
                    .eq("message_type", "post")\
                    .execute()
                leaves = leaves_result.data or []

            return TreeStatsResponse(
                member_count=len(members_result.data or []),
                branch_count=len(branch_ids),
                leaves=LeafStats(**compute_leaf_stats(leaves))
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
