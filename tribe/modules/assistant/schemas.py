from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import datetime


class ThreadCreate(BaseModel):
    tree_id: str
    message: str = Field(..., min_length=1, max_length=4000)


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


class MessageResponse(BaseModel):
    id: str
    thread_id: str
    author: Literal["parent", "assistant"]
    content: str
    created_at: Optional[datetime] = None


class ThreadResponse(BaseModel):
    id: str
    tree_id: str
    created_by: str
    title: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ThreadDetailResponse(ThreadResponse):
    messages: List[MessageResponse] = []


class ExchangeResponse(BaseModel):
    """The stored parent message and the assistant's reply"""
    messages: List[MessageResponse]
