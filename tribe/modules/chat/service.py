from supabase import Client
from tribe.modules.chat.schemas import ChatMessageCreate, ChatMessageResponse
from typing import List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

CHAT_MESSAGE_TYPES = ["message", "reply"]


class ChatService:
    """Branch chat; messages are rows in posts with a chat message_type"""

    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_messages(self, branch_id: str, since: Optional[str] = None, limit: int = 50) -> List[ChatMessageResponse]:
        """Oldest first; since returns only messages created after that timestamp"""
        try:
            query = self.supabase.table("posts")\
                .select("*")\
                .eq("branch_id", branch_id)\
                .in_("message_type", CHAT_MESSAGE_TYPES)
            if since:
                query = query.gt("created_at", since)
                result = query.order("created_at").limit(limit).execute()
                return [ChatMessageResponse(**m) for m in result.data or []]

            # Latest page, returned in chronological order
            result = query.order("created_at", desc=True).limit(limit).execute()
            return [ChatMessageResponse(**m) for m in reversed(result.data or [])]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def send_message(self, branch_id: str, author_id: str, message: ChatMessageCreate) -> ChatMessageResponse:
        try:
            if message.reply_to_id:
                parent = self.supabase.table("posts")\
                    .select("id")\
                    .eq("id", message.reply_to_id)\
                    .eq("branch_id", branch_id)\
                    .limit(1)\
                    .execute()
                if not parent.data:
                    raise HTTPException(status_code=404, detail="Message to reply to not found")

            result = self.supabase.table("posts").insert({
                "branch_id": branch_id,
                "author_id": author_id,
                "content": message.content,
                "leaf_type": "text",
                "message_type": "reply" if message.reply_to_id else "message",
                "reply_to_id": message.reply_to_id,
                "tags": [],
                "ai_tags": [],
                "media_urls": [],
                "assignment_status": "assigned"
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send message")

            return ChatMessageResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
