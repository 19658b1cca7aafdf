from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime

FamilyRole = Literal["parent", "child", "grandparent", "grandchild", "sibling", "spouse", "partner", "other"]
ProfileVisibility = Literal["branches", "private"]


class ProfileUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    family_role: Optional[FamilyRole] = None


class ProfileResponse(BaseModel):
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    family_role: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserSettingsUpdate(BaseModel):
    profile_visibility: Optional[ProfileVisibility] = None
    show_email: Optional[bool] = None
    show_join_date: Optional[bool] = None
    email_new_posts: Optional[bool] = None
    email_comments: Optional[bool] = None
    email_mentions: Optional[bool] = None
    email_invitations: Optional[bool] = None
    push_notifications: Optional[bool] = None


class UserSettingsResponse(BaseModel):
    id: str
    user_id: str
    profile_visibility: str = "branches"
    show_email: bool = False
    show_join_date: bool = True
    email_new_posts: bool = True
    email_comments: bool = True
    email_mentions: bool = True
    email_invitations: bool = True
    push_notifications: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
