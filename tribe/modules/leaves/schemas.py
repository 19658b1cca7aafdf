from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime

LeafType = Literal["photo", "video", "audio", "text", "milestone"]
ReactionType = Literal["heart", "smile", "laugh", "wow", "care", "love"]


class LeafBase(BaseModel):
    leaf_type: LeafType = "text"
    content: Optional[str] = None
    media_urls: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    milestone_type: Optional[str] = None
    milestone_date: Optional[str] = None
    season: Optional[str] = None
    ai_caption: Optional[str] = None
    ai_tags: Optional[List[str]] = None


class LeafCreate(LeafBase):
    branch_id: str


class UnassignedLeafCreate(LeafBase):
    # Only honoured for webhook callers; signed-in users always author their own leaves
    author_id: Optional[str] = None


class LeafUpdate(BaseModel):
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    milestone_type: Optional[str] = None
    milestone_date: Optional[str] = None
    season: Optional[str] = None
    is_pinned: Optional[bool] = None


class LeafResponse(BaseModel):
    id: str
    branch_id: Optional[str] = None
    author_id: str
    content: Optional[str] = None
    media_urls: List[str] = []
    leaf_type: str
    milestone_type: Optional[str] = None
    milestone_date: Optional[str] = None
    tags: List[str] = []
    season: Optional[str] = None
    ai_caption: Optional[str] = None
    ai_tags: List[str] = []
    reply_to_id: Optional[str] = None
    message_type: str = "post"
    is_pinned: bool = False
    edited_at: Optional[datetime] = None
    assignment_status: str = "assigned"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LeafAssign(BaseModel):
    branch_id: str


class ReactionCreate(BaseModel):
    reaction_type: ReactionType


class ReactionResponse(BaseModel):
    id: str
    leaf_id: str
    user_id: str
    reaction_type: str
    created_at: Optional[datetime] = None


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    id: str
    post_id: str
    author_id: str
    content: str
    created_at: Optional[datetime] = None


class LeafShareRequest(BaseModel):
    branch_ids: List[str]


class LeafShareResponse(BaseModel):
    id: str
    leaf_id: str
    branch_id: str
    shared_by: str
    created_at: Optional[datetime] = None


class MilestoneResponse(BaseModel):
    id: str
    name: str
    display_name: str
    description: Optional[str] = None
    category: str
    typical_age_months: Optional[int] = None
    icon: Optional[str] = None
    color: Optional[str] = None


class MediaUploadResponse(BaseModel):
    leaf_id: str
    urls: List[str]
