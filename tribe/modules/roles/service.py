from supabase import Client
from tribe.modules.roles.schemas import RoleResponse, RBACContext, MyRoleResponse
from tribe.modules.trees.service import TreeService
from tribe.modules.branches.service import BranchService
from tribe.config.permissions_config import PERMISSION_MATRIX
from tribe.core.dependencies import get_tree_member_role
from tribe.core.rbac import RBACService
from typing import List, Optional
from fastapi import HTTPException


class RoleService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.rbac = RBACService(supabase)

    def list_roles(self) -> List[RoleResponse]:
        """System roles in priority order with the permissions each grants"""
        return [RoleResponse(**role) for role in PERMISSION_MATRIX["roles"]]

    def get_my_role(self, user_id: str, context: RBACContext) -> MyRoleResponse:
        return MyRoleResponse(
            context_type=context.type,
            context_id=context.id,
            role=self.rbac.get_user_role(user_id, context),
            permissions=self.rbac.get_user_permissions(user_id, context)
        )

    def _is_branch_member(self, branch_id: str, user_id: str) -> bool:
        result = self.supabase.table("branch_members")\
            .select("id")\
            .eq("branch_id", branch_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        return bool(result.data)

    def assign_role(self, user_id: str, role: str, context: RBACContext, granted_by: Optional[str]) -> None:
        """Tree roles live on the membership row; branch members get their row updated too"""
        if context.type == "tree":
            tree_service = TreeService(self.supabase)
            if user_id == tree_service.get_tree(context.id).created_by:
                raise HTTPException(status_code=400, detail="The tree creator's role cannot be changed")
            if get_tree_member_role(context.id, user_id, self.supabase) is None:
                raise HTTPException(status_code=404, detail="User is not a member of this tree")
            tree_service.update_member_role(context.id, user_id, role, granted_by)
            return

        if context.type == "branch" and self._is_branch_member(context.id, user_id):
            branch_service = BranchService(self.supabase)
            if user_id == branch_service.get_branch(context.id).created_by:
                raise HTTPException(status_code=400, detail="The branch creator's role cannot be changed")
            branch_service.update_member_role(context.id, user_id, role, granted_by)
            return

        if not self.rbac.assign_role(user_id, role, context, granted_by):
            raise HTTPException(status_code=500, detail=f"Failed to assign role {role}")

    def remove_role(self, user_id: str, context: RBACContext) -> None:
        """Drop role assignments that do not come with a membership"""
        if context.type == "tree" and get_tree_member_role(context.id, user_id, self.supabase) is not None:
            raise HTTPException(status_code=400, detail="Tree members keep a role; change it or remove the member")
        if context.type == "branch" and self._is_branch_member(context.id, user_id):
            raise HTTPException(status_code=400, detail="Branch members keep a role; change it or remove the member")
        if not self.rbac.remove_role(user_id, context):
            raise HTTPException(status_code=500, detail="Failed to remove role")
