from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime


class ChatMessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)
    reply_to_id: Optional[str] = None


class ChatMessageResponse(BaseModel):
    id: str
    branch_id: str
    author_id: str
    content: Optional[str] = None
    message_type: str
    reply_to_id: Optional[str] = None
    is_pinned: bool = False
    edited_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
