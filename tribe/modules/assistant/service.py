from supabase import Client
from tribe.modules.assistant.schemas import (
    ThreadResponse, ThreadDetailResponse, MessageResponse, ExchangeResponse
)
from tribe.modules.assistant.llm import AssistantLLM, generate_thread_title
from tribe.core.dependencies import get_tree_member_role
from tribe.config import settings
from typing import Any, Dict, List
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

ASSISTANT_ROLES = ("owner", "admin")


class AssistantService:
    def __init__(self, supabase: Client, llm: AssistantLLM):
        self.supabase = supabase
        self.llm = llm

    def check_access(self, tree_id: str, user_id: str) -> None:
        """Only tree owners and admins may use the assistant"""
        if get_tree_member_role(tree_id, user_id, self.supabase) not in ASSISTANT_ROLES:
            raise HTTPException(status_code=403, detail="Only tree owners and admins can use the assistant")

    def _tree_name(self, tree_id: str) -> str:
        result = self.supabase.table("trees")\
            .select("name")\
            .eq("id", tree_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Tree not found")
        return result.data[0]["name"]

    def _children(self, tree_id: str) -> List[Dict[str, Any]]:
        result = self.supabase.table("children")\
            .select("name, dob")\
            .eq("tree_id", tree_id)\
            .execute()
        return result.data or []

    def _recent_history(self, thread_id: str) -> List[Dict[str, Any]]:
        """The last assistant_history_limit messages, oldest first"""
        result = self.supabase.table("assistant_messages")\
            .select("author, content, created_at")\
            .eq("thread_id", thread_id)\
            .order("created_at", desc=True)\
            .limit(settings.assistant_history_limit)\
            .execute()
        return list(reversed(result.data or []))

    def _store_message(self, thread_id: str, author: str, content: str) -> MessageResponse:
        result = self.supabase.table("assistant_messages").insert({
            "thread_id": thread_id,
            "author": author,
            "content": content
        }).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to save message")
        return MessageResponse(**result.data[0])

    def get_thread(self, thread_id: str) -> ThreadResponse:
        try:
            result = self.supabase.table("assistant_threads")\
                .select("*")\
                .eq("id", thread_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Thread not found")

            return ThreadResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_thread_detail(self, thread_id: str) -> ThreadDetailResponse:
        thread = self.get_thread(thread_id)
        try:
            result = self.supabase.table("assistant_messages")\
                .select("*")\
                .eq("thread_id", thread_id)\
                .order("created_at")\
                .execute()
            return ThreadDetailResponse(
                **thread.model_dump(),
                messages=[MessageResponse(**m) for m in result.data or []]
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_threads(self, tree_id: str) -> List[ThreadResponse]:
        """Most recently active first"""
        try:
            result = self.supabase.table("assistant_threads")\
                .select("*")\
                .eq("tree_id", tree_id)\
                .order("updated_at", desc=True)\
                .execute()
            return [ThreadResponse(**t) for t in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_thread(self, tree_id: str, user_id: str, initial_message: str) -> ThreadDetailResponse:
        """Open a thread titled after the first message and answer it"""
        try:
            result = self.supabase.table("assistant_threads").insert({
                "tree_id": tree_id,
                "created_by": user_id,
                "title": generate_thread_title(initial_message)
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create thread")

            thread = ThreadResponse(**result.data[0])
            logger.info(f"Assistant thread {thread.id} created in tree {tree_id} by {user_id}")
            self.send_message(thread, initial_message)
            return self.get_thread_detail(thread.id)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def send_message(self, thread: ThreadResponse, content: str) -> ExchangeResponse:
        """Store the parent's message, ask the model with recent history and store its reply"""
        try:
            history = self._recent_history(thread.id)
            parent_message = self._store_message(thread.id, "parent", content)

            reply = self.llm.generate_reply(
                content,
                history,
                self._children(thread.tree_id),
                self._tree_name(thread.tree_id)
            )
            assistant_message = self._store_message(thread.id, "assistant", reply)

            self.supabase.table("assistant_threads")\
                .update({"updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", thread.id)\
                .execute()

            return ExchangeResponse(messages=[parent_message, assistant_message])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_thread(self, thread_id: str, user_id: str) -> bool:
        """Delete a thread and its messages (creator only)"""
        thread = self.get_thread(thread_id)
        if thread.created_by != user_id:
            raise HTTPException(status_code=403, detail="Only the thread creator can delete it")
        try:
            self.supabase.table("assistant_messages")\
                .delete()\
                .eq("thread_id", thread_id)\
                .execute()
            result = self.supabase.table("assistant_threads")\
                .delete()\
                .eq("id", thread_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
