from fastapi import APIRouter, Depends
from tribe.database.supabase_client import get_supabase
from tribe.modules.chat.schemas import ChatMessageCreate, ChatMessageResponse
from tribe.modules.chat.service import ChatService
from tribe.core.dependencies import require_branch_permission
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/branches/{branch_id}/messages", tags=["chat"])


def get_chat_service(supabase: Client = Depends(get_supabase)) -> ChatService:
    return ChatService(supabase)


@router.get("", response_model=List[ChatMessageResponse])
async def list_messages(
    branch_id: str,
    since: Optional[str] = None,
    limit: int = 50,
    user_data: Dict = Depends(require_branch_permission("can_read")),
    service: ChatService = Depends(get_chat_service)
):
    """Branch chat history, oldest first; poll with since for newer messages"""
    return service.list_messages(branch_id, since=since, limit=min(max(limit, 1), 100))


@router.post("", response_model=ChatMessageResponse, status_code=201)
async def send_message(
    branch_id: str,
    message: ChatMessageCreate,
    user_data: Dict = Depends(require_branch_permission("can_create_posts")),
    service: ChatService = Depends(get_chat_service)
):
    return service.send_message(branch_id, user_data["id"], message)
