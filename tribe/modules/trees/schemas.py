from pydantic import BaseModel, Field
from typing import Optional, Dict, Any
from datetime import datetime
from tribe.modules.roles.schemas import RoleName


class TreeCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    settings: Dict[str, Any] = {}


class TreeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    settings: Optional[Dict[str, Any]] = None


class TreeResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    created_by: str
    is_active: bool = True
    settings: Dict[str, Any] = {}
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserTreeResponse(BaseModel):
    tree: TreeResponse
    role: str
    joined_at: Optional[datetime] = None


class TreeMemberAdd(BaseModel):
    user_id: str
    role: RoleName = "member"


class TreeMemberRoleUpdate(BaseModel):
    role: RoleName


class TreeMemberResponse(BaseModel):
    id: str
    tree_id: str
    user_id: str
    role: str
    joined_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PrimaryTreeResponse(BaseModel):
    tree_id: Optional[str] = None


class LeafStats(BaseModel):
    total_leaves: int = 0
    milestone_count: int = 0
    recent_leaves: int = 0
    leaf_type_breakdown: Dict[str, int] = {}
    season_breakdown: Dict[str, int] = {}


class TreeStatsResponse(BaseModel):
    member_count: int
    branch_count: int
    leaves: LeafStats
