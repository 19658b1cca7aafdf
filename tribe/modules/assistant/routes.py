from fastapi import APIRouter, Depends
from tribe.database.supabase_client import get_supabase
from tribe.modules.assistant.schemas import (
    ThreadCreate, MessageCreate, ThreadResponse, ThreadDetailResponse, ExchangeResponse
)
from tribe.modules.assistant.service import AssistantService
from tribe.modules.assistant.llm import AssistantLLM, get_assistant_llm
from tribe.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/assistant", tags=["assistant"])


def get_assistant_service(
    supabase: Client = Depends(get_supabase),
    llm: AssistantLLM = Depends(get_assistant_llm)
) -> AssistantService:
    return AssistantService(supabase, llm)


# Model calls block, so the routes that make them are plain def and run in the threadpool
@router.post("/threads", response_model=ThreadDetailResponse, status_code=201)
def create_thread(
    thread_data: ThreadCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: AssistantService = Depends(get_assistant_service)
):
    """Start a conversation with an opening message"""
    service.check_access(thread_data.tree_id, user_data["id"])
    return service.create_thread(thread_data.tree_id, user_data["id"], thread_data.message)


@router.get("/threads", response_model=List[ThreadResponse])
async def list_threads(
    tree_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: AssistantService = Depends(get_assistant_service)
):
    """List a tree's assistant threads"""
    service.check_access(tree_id, user_data["id"])
    return service.list_threads(tree_id)


@router.get("/threads/{thread_id}", response_model=ThreadDetailResponse)
async def get_thread(
    thread_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: AssistantService = Depends(get_assistant_service)
):
    thread = service.get_thread(thread_id)
    service.check_access(thread.tree_id, user_data["id"])
    return service.get_thread_detail(thread_id)


@router.post("/threads/{thread_id}/messages", response_model=ExchangeResponse, status_code=201)
def send_message(
    thread_id: str,
    message: MessageCreate,
    user_data: Dict = Depends(get_current_user_id),
    service: AssistantService = Depends(get_assistant_service)
):
    """Send a message and receive the assistant's reply"""
    thread = service.get_thread(thread_id)
    service.check_access(thread.tree_id, user_data["id"])
    return service.send_message(thread, message.content)


@router.delete("/threads/{thread_id}", status_code=204)
async def delete_thread(
    thread_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: AssistantService = Depends(get_assistant_service)
):
    """Delete a thread (creator only)"""
    service.delete_thread(thread_id, user_data["id"])
    return None
