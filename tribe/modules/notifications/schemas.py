from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class NotificationCreate(BaseModel):
    user_id: str
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    icon: Optional[str] = None
    context_type: Optional[str] = None
    context_id: Optional[str] = None
    action_url: Optional[str] = None
    priority: int = Field(default=1, ge=1, le=5)
    group_key: Optional[str] = None


class NotificationResponse(BaseModel):
    id: str
    user_id: str
    title: str
    message: str
    icon: Optional[str] = None
    context_type: Optional[str] = None
    context_id: Optional[str] = None
    action_url: Optional[str] = None
    is_read: bool = False
    read_at: Optional[datetime] = None
    priority: int = 1
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MarkAllReadResponse(BaseModel):
    updated: int
