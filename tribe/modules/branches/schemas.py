from pydantic import BaseModel, Field
from typing import Optional, Literal, Dict
from datetime import datetime
from tribe.modules.roles.schemas import RoleName

BranchPrivacy = Literal["private", "invite_only", "public"]
JoinMethod = Literal["invited", "requested", "auto_approved", "admin_added"]


class BranchCreate(BaseModel):
    tree_id: str
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    color: str = "blue"
    privacy: BranchPrivacy = "private"
    category: Optional[str] = None
    location: Optional[str] = None


class BranchUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    color: Optional[str] = None
    privacy: Optional[BranchPrivacy] = None
    category: Optional[str] = None
    location: Optional[str] = None


class BranchResponse(BaseModel):
    id: str
    tree_id: str
    name: str
    description: Optional[str] = None
    color: Optional[str] = None
    created_by: str
    type: Optional[str] = "family"
    privacy: Optional[str] = "private"
    category: Optional[str] = None
    location: Optional[str] = None
    member_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BranchMemberAdd(BaseModel):
    user_id: str
    role: RoleName = "member"
    join_method: JoinMethod = "admin_added"


class BranchMemberRoleUpdate(BaseModel):
    role: RoleName


class BranchMemberResponse(BaseModel):
    id: str
    branch_id: str
    user_id: str
    role: str
    join_method: Optional[str] = None
    joined_via: Optional[str] = None
    status: Optional[str] = "active"
    added_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CrossTreeAccessCreate(BaseModel):
    tree_id: str
    permissions: Dict[str, bool] = {"can_read": True, "can_comment": True, "can_like": True}


class CrossTreeAccessResponse(BaseModel):
    id: str
    branch_id: str
    tree_id: str
    invited_by: str
    permissions: Dict[str, bool] = {}
    status: str
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
