from pydantic import BaseModel
from typing import Optional, List, Literal, Dict

ContextType = Literal["global", "tree", "branch"]
RoleName = Literal["owner", "admin", "moderator", "member", "viewer"]


class RBACContext(BaseModel):
    type: ContextType
    id: Optional[str] = None

    @property
    def cache_key_suffix(self) -> str:
        return f"{self.type}:{self.id or 'global'}"


class BranchPermissions(BaseModel):
    can_read: bool = False
    can_update: bool = False
    can_delete: bool = False
    can_create_posts: bool = False
    can_moderate: bool = False
    can_invite_members: bool = False
    can_manage_members: bool = False
    is_owner: bool = False
    is_admin: bool = False
    is_moderator: bool = False
    user_role: str = "none"


class RoleResponse(BaseModel):
    name: str
    description: Optional[str] = None
    permissions: List[str]


class RoleAssignmentRequest(BaseModel):
    user_id: str
    role: RoleName
    context_type: ContextType
    context_id: Optional[str] = None


class RoleAssignmentResponse(BaseModel):
    user_id: str
    role: str
    context_type: str
    context_id: Optional[str] = None
    granted_by: Optional[str] = None


class PermissionCheckRequest(BaseModel):
    permission: str
    context_type: ContextType
    context_id: Optional[str] = None


class PermissionCheckResponse(BaseModel):
    permission: str
    allowed: bool


class MyRoleResponse(BaseModel):
    context_type: str
    context_id: Optional[str] = None
    role: str
    permissions: Dict[str, bool]
