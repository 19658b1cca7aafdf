from supabase import Client
from tribe.modules.leaves.schemas import (
    LeafCreate, UnassignedLeafCreate, LeafUpdate, LeafResponse,
    ReactionResponse, CommentResponse, LeafShareResponse, MilestoneResponse
)
from tribe.modules.notifications.schemas import NotificationCreate
from tribe.modules.notifications.service import NotificationService
from tribe.config import settings
from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime, timedelta, timezone
from fastapi import HTTPException
import logging
import os

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=7)
SEARCH_LIMIT = 50


def _quoted(value: str) -> str:
    """Double-quote a PostgREST filter value so commas, dots and parentheses stay literal"""
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _parse_created_at(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def compute_leaf_stats(leaves: List[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Totals and breakdowns over rows carrying leaf_type, season, milestone_type and created_at"""
    week_ago = (now or datetime.now(timezone.utc)) - RECENT_WINDOW
    leaf_type_breakdown: Dict[str, int] = {}
    season_breakdown: Dict[str, int] = {}
    milestone_count = 0
    recent_leaves = 0

    for leaf in leaves:
        if leaf.get("milestone_type"):
            milestone_count += 1
        created_at = _parse_created_at(leaf.get("created_at"))
        if created_at and created_at > week_ago:
            recent_leaves += 1
        leaf_type = leaf.get("leaf_type")
        if leaf_type:
            leaf_type_breakdown[leaf_type] = leaf_type_breakdown.get(leaf_type, 0) + 1
        season = leaf.get("season")
        if season:
            season_breakdown[season] = season_breakdown.get(season, 0) + 1

    return {
        "total_leaves": len(leaves),
        "milestone_count": milestone_count,
        "recent_leaves": recent_leaves,
        "leaf_type_breakdown": leaf_type_breakdown,
        "season_breakdown": season_breakdown,
    }


class LeafService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _leaf_row(self, leaf_data, author_id: str) -> Dict[str, Any]:
        row = leaf_data.model_dump(exclude={"branch_id", "author_id"}, exclude_none=True)
        row.update({
            "author_id": author_id,
            "tags": leaf_data.tags or [],
            "ai_tags": leaf_data.ai_tags or [],
            "media_urls": leaf_data.media_urls or [],
            "message_type": "post",
        })
        return row

    def _insert_leaf(self, row: Dict[str, Any]) -> LeafResponse:
        result = self.supabase.table("posts").insert(row).execute()
        if not result.data:
            raise HTTPException(status_code=500, detail="Failed to create leaf")
        return LeafResponse(**result.data[0])

    def create_leaf(self, leaf_data: LeafCreate, author_id: str) -> LeafResponse:
        """Create a leaf in a branch"""
        try:
            row = self._leaf_row(leaf_data, author_id)
            row["branch_id"] = leaf_data.branch_id
            row["assignment_status"] = "assigned"
            leaf = self._insert_leaf(row)
            logger.info(f"Leaf {leaf.id} created in branch {leaf_data.branch_id} by {author_id}")
            return leaf
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_unassigned_leaf(self, leaf_data: UnassignedLeafCreate, author_id: str) -> LeafResponse:
        """Create a leaf that belongs to no branch yet"""
        try:
            row = self._leaf_row(leaf_data, author_id)
            row["branch_id"] = None
            row["assignment_status"] = "unassigned"
            leaf = self._insert_leaf(row)
            logger.info(f"Unassigned leaf {leaf.id} created for {author_id}")
            return leaf
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_leaf(self, leaf_id: str) -> LeafResponse:
        try:
            result = self.supabase.table("posts")\
                .select("*")\
                .eq("id", leaf_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Leaf not found")

            return LeafResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_user_leaves(
        self, user_id: str, unassigned_only: bool = False, limit: int = 20, offset: int = 0
    ) -> List[LeafResponse]:
        """Leaves the user authored, newest first"""
        try:
            query = self.supabase.table("posts")\
                .select("*")\
                .eq("author_id", user_id)\
                .eq("message_type", "post")
            if unassigned_only:
                query = query.eq("assignment_status", "unassigned")
            result = query.order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            return [LeafResponse(**leaf) for leaf in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_shared_branch_ids(self, leaf_id: str) -> List[str]:
        result = self.supabase.table("leaf_shares")\
            .select("branch_id")\
            .eq("leaf_id", leaf_id)\
            .execute()
        return [s["branch_id"] for s in result.data or []]

    def list_branch_leaves(self, branch_id: str, limit: int = 20, offset: int = 0) -> List[LeafResponse]:
        """Leaves posted in or shared with a branch, newest first"""
        try:
            window = offset + limit
            direct = self.supabase.table("posts")\
                .select("*")\
                .eq("branch_id", branch_id)\
                .eq("message_type", "post")\
                .order("created_at", desc=True)\
                .range(0, window - 1)\
                .execute()
            leaves = {leaf["id"]: leaf for leaf in direct.data or []}

            shares = self.supabase.table("leaf_shares")\
                .select("leaf_id")\
                .eq("branch_id", branch_id)\
                .execute()
            shared_ids = [s["leaf_id"] for s in shares.data or [] if s["leaf_id"] not in leaves]
            if shared_ids:
                shared = self.supabase.table("posts")\
                    .select("*")\
                    .in_("id", shared_ids)\
                    .order("created_at", desc=True)\
                    .range(0, window - 1)\
                    .execute()
                for leaf in shared.data or []:
                    leaves[leaf["id"]] = leaf

            ordered = sorted(leaves.values(), key=lambda leaf: str(leaf.get("created_at") or ""), reverse=True)
            return [LeafResponse(**leaf) for leaf in ordered[offset:window]]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _tree_branch_ids(self, tree_id: str) -> List[str]:
        result = self.supabase.table("branches")\
            .select("id")\
            .eq("tree_id", tree_id)\
            .execute()
        return [b["id"] for b in result.data or []]

    def list_branches_leaves(self, branch_ids: List[str], limit: int = 20, offset: int = 0) -> List[LeafResponse]:
        """Leaves posted in any of branch_ids, newest first"""
        try:
            if not branch_ids:
                return []
            result = self.supabase.table("posts")\
                .select("*")\
                .in_("branch_id", branch_ids)\
                .eq("message_type", "post")\
                .order("created_at", desc=True)\
                .range(offset, offset + limit - 1)\
                .execute()
            return [LeafResponse(**leaf) for leaf in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_leaf(self, leaf_id: str, leaf_data: LeafUpdate) -> LeafResponse:
        try:
            now = datetime.now(timezone.utc).isoformat()
            update_data = leaf_data.model_dump(exclude_none=True)
            update_data["updated_at"] = now
            if leaf_data.content is not None:
                update_data["edited_at"] = now

            result = self.supabase.table("posts")\
                .update(update_data)\
                .eq("id", leaf_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Leaf not found")

            return LeafResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_leaf(self, leaf_id: str) -> bool:
        """Delete a leaf with its reactions, comments and shares"""
        try:
            self.supabase.table("leaf_reactions").delete().eq("leaf_id", leaf_id).execute()
            self.supabase.table("leaf_shares").delete().eq("leaf_id", leaf_id).execute()
            self.supabase.table("comments").delete().eq("post_id", leaf_id).execute()
            result = self.supabase.table("posts").delete().eq("id", leaf_id).execute()
            logger.info(f"Leaf {leaf_id} deleted")
            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def assign_leaf(self, leaf_id: str, branch_id: str) -> LeafResponse:
        """Move a leaf into a branch"""
        try:
            result = self.supabase.table("posts")\
                .update({
                    "branch_id": branch_id,
                    "assignment_status": "assigned",
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", leaf_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Leaf not found")

            return LeafResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_reaction(self, leaf_id: str, user_id: str, reaction_type: str) -> ReactionResponse:
        """One reaction per user per leaf; a new one replaces the old"""
        try:
            result = self.supabase.table("leaf_reactions").upsert({
                "leaf_id": leaf_id,
                "user_id": user_id,
                "reaction_type": reaction_type
            }, on_conflict="leaf_id,user_id").execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add reaction")

            return ReactionResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_reaction(self, leaf_id: str, user_id: str) -> bool:
        try:
            result = self.supabase.table("leaf_reactions")\
                .delete()\
                .eq("leaf_id", leaf_id)\
                .eq("user_id", user_id)\
                .execute()
            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_reactions(self, leaf_id: str) -> List[ReactionResponse]:
        try:
            result = self.supabase.table("leaf_reactions")\
                .select("*")\
                .eq("leaf_id", leaf_id)\
                .order("created_at")\
                .execute()
            return [ReactionResponse(**r) for r in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def add_comment(self, leaf: LeafResponse, author_id: str, content: str) -> CommentResponse:
        """Comment on a leaf; the leaf's author is notified when someone else comments"""
        try:
            result = self.supabase.table("comments").insert({
                "post_id": leaf.id,
                "author_id": author_id,
                "content": content
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add comment")

            if leaf.author_id != author_id:
                NotificationService(self.supabase).create_notification(NotificationCreate(
                    user_id=leaf.author_id,
                    title="New comment",
                    message=content[:200],
                    icon="comment",
                    context_type="leaf",
                    context_id=leaf.id,
                    group_key=f"leaf_comments:{leaf.id}"
                ))

            return CommentResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_comments(self, leaf_id: str) -> List[CommentResponse]:
        """Oldest first"""
        try:
            result = self.supabase.table("comments")\
                .select("*")\
                .eq("post_id", leaf_id)\
                .order("created_at")\
                .execute()
            return [CommentResponse(**c) for c in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_comment(self, leaf_id: str, comment_id: str) -> CommentResponse:
        try:
            result = self.supabase.table("comments")\
                .select("*")\
                .eq("id", comment_id)\
                .eq("post_id", leaf_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Comment not found")

            return CommentResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_comment(self, comment_id: str) -> bool:
        try:
            result = self.supabase.table("comments").delete().eq("id", comment_id).execute()
            return len(result.data) > 0
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def share_with_branches(self, leaf_id: str, branch_ids: List[str], shared_by: str) -> List[LeafShareResponse]:
        """Replace the leaf's shares with branch_ids"""
        try:
            self.supabase.table("leaf_shares")\
                .delete()\
                .eq("leaf_id", leaf_id)\
                .execute()

            unique_ids = list(dict.fromkeys(branch_ids))
            if not unique_ids:
                return []

            result = self.supabase.table("leaf_shares").insert([
                {"leaf_id": leaf_id, "branch_id": branch_id, "shared_by": shared_by}
                for branch_id in unique_ids
            ]).execute()
            return [LeafShareResponse(**s) for s in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def search_leaves(
        self,
        query: str = "",
        tree_id: Optional[str] = None,
        branch_id: Optional[str] = None,
        leaf_types: Optional[List[str]] = None,
        seasons: Optional[List[str]] = None,
        milestone_types: Optional[List[str]] = None,
        tags: Optional[List[str]] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        branch_scope: Optional[List[str]] = None
    ) -> List[LeafResponse]:
        """Text and filter search over leaves; branch_scope limits results to readable branches"""
        try:
            builder = self.supabase.table("posts")\
                .select("*")\
                .eq("message_type", "post")

            if query.strip():
                pattern = _quoted(f"%{query.strip()}%")
                builder = builder.or_(f"content.ilike.{pattern},ai_caption.ilike.{pattern}")

            scope = branch_scope
            if tree_id:
                tree_branches = self._tree_branch_ids(tree_id)
                scope = tree_branches if scope is None else [b for b in scope if b in tree_branches]
            if branch_id:
                scope = [branch_id] if scope is None or branch_id in scope else []
            if scope is not None:
                if not scope:
                    return []
                builder = builder.in_("branch_id", scope)

            if leaf_types:
                builder = builder.in_("leaf_type", leaf_types)
            if seasons:
                builder = builder.in_("season", seasons)
            if milestone_types:
                builder = builder.in_("milestone_type", milestone_types)
            if tags:
                builder = builder.overlaps("tags", tags)
            if date_from:
                builder = builder.gte("created_at", date_from)
            if date_to:
                builder = builder.lte("created_at", date_to)

            result = builder.order("created_at", desc=True)\
                .limit(SEARCH_LIMIT)\
                .execute()
            return [LeafResponse(**leaf) for leaf in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_milestones(self, category: Optional[str] = None) -> List[MilestoneResponse]:
        """Milestone catalogue ordered by category then typical age"""
        try:
            query = self.supabase.table("milestones").select("*")
            if category:
                query = query.eq("category", category)
            else:
                query = query.order("category")
            result = query.order("typical_age_months").execute()
            return [MilestoneResponse(**m) for m in result.data or []]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def upload_media(self, leaf: LeafResponse, files: List[Tuple[str, bytes, Optional[str]]]) -> List[str]:
        """Store (filename, content, content_type) files and append their public URLs to the leaf"""
        try:
            bucket = self.supabase.storage.from_(settings.media_bucket)
            start = len(leaf.media_urls)
            urls = []
            for index, (filename, content, content_type) in enumerate(files, start=start):
                ext = os.path.splitext(filename or "")[1].lstrip(".").lower() or "bin"
                path = f"{leaf.author_id}/{leaf.id}/{leaf.id}_{index}.{ext}"
                bucket.upload(path, content, {"content-type": content_type or "application/octet-stream"})
                urls.append(bucket.get_public_url(path))

            self.supabase.table("posts")\
                .update({"media_urls": leaf.media_urls + urls})\
                .eq("id", leaf.id)\
                .execute()
            logger.info(f"Uploaded {len(urls)} media files for leaf {leaf.id}")
            return urls
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Media upload failed for leaf {leaf.id}: {e}")
            raise HTTPException(status_code=500, detail=str(e))
