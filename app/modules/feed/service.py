from supabase import Client
from app.modules.feed.schemas import PostCreate, CommentCreate, ShareRequest
from app.modules.notifications.service import NotificationService
from app.core.dependencies import is_org_member
from typing import Any, Dict, List, Optional
from fastapi import HTTPException
from datetime import datetime
import logging

logger = logging.getLogger(__name__)

AUTHOR_SELECT = "author:user_profile!user_id(id, name, username, avatar_url, level)"
POST_SELECT = f"*, {AUTHOR_SELECT}"
COMMENT_SELECT = f"*, {AUTHOR_SELECT}"


def build_comment_tree(comments: List[dict], liked_ids: Optional[set] = None) -> List[dict]:
    """Nest comments under their parent; orphans whose parent is outside the page are dropped"""
    nodes: Dict[str, dict] = {}
    for comment in comments:
        node = {**comment, "replies": []}
        if liked_ids is not None:
            node["has_liked"] = comment["id"] in liked_ids
        nodes[comment["id"]] = node

    roots = []
    for comment in comments:
        node = nodes[comment["id"]]
        parent_id = comment.get("parent_id")
        if parent_id:
            parent = nodes.get(parent_id)
            if parent is not None:
                parent["replies"].append(node)
        else:
            roots.append(node)
    return roots


def share_content(original: str, limit: int = 100) -> str:
    original = original or ""
    suffix = "..." if len(original) > limit else ""
    return f"Shared: {original[:limit]}{suffix}"


class FeedService:
    def __init__(self, supabase: Client):
        self.supabase = supabase
        self.notifications = NotificationService(supabase)

    # Posts

    def _get_post_row(self, post_id: str, columns: str = "*") -> dict:
        result = self.supabase.table("post")\
            .select(columns)\
            .eq("id", post_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Post not found")
        return result.data[0]

    def check_post_access(self, post: dict, user_data: dict) -> None:
        """Private posts are owner-only; org posts need membership"""
        user_id = user_data["id"]
        if post.get("user_id") == user_id:
            return
        visibility = post.get("visibility")
        if visibility == "private":
            raise HTTPException(status_code=403, detail="You do not have access to this post")
        if visibility == "org" and post.get("org_id"):
            if not is_org_member(post["org_id"], user_data, self.supabase):
                raise HTTPException(status_code=403, detail="You do not have access to this post")

    def _sync_counter(self, table: str, row_id: str, column: str, source_table: str, key: str) -> int:
        """Recount a denormalized counter from the rows it summarises and store it"""
        try:
            counted = self.supabase.table(source_table)\
                .select("id", count="exact")\
                .eq(key, row_id)\
                .execute()
            value = counted.count or 0
            self.supabase.table(table)\
                .update({column: value})\
                .eq("id", row_id)\
                .execute()
            return value
        except Exception as e:
            logger.error(f"Error updating {table}.{column} for {row_id}: {e}")
            return 0

    def get_feed(
        self,
        user_data: dict,
        limit: int = 20,
        cursor: Optional[str] = None,
        author_id: Optional[str] = None,
        org_id: Optional[str] = None,
    ) -> dict:
        user_id = user_data["id"]
        try:
            query = self.supabase.table("post").select(POST_SELECT)

            if cursor:
                cursor_result = self.supabase.table("post")\
                    .select("created_at")\
                    .eq("id", cursor)\
                    .limit(1)\
                    .execute()
                if cursor_result.data:
                    query = query.lt("created_at", cursor_result.data[0]["created_at"])

            if author_id:
                query = query.eq("user_id", author_id)
            if org_id:
                query = query.eq("org_id", org_id)

            # Private posts are only ever listed to their owner
            if author_id != user_id:
                if org_id and is_org_member(org_id, user_data, self.supabase):
                    query = query.or_(f"visibility.neq.private,user_id.eq.{user_id}")
                else:
                    query = query.or_(f"visibility.eq.public,user_id.eq.{user_id}")

            # one extra row tells us whether another page exists
            result = query.order("created_at", desc=True)\
                .limit(limit + 1)\
                .execute()
            rows = result.data or []
            has_more = len(rows) > limit
            posts = rows[:limit]
            return {
                "posts": posts,
                "next_cursor": posts[-1]["id"] if has_more and posts else None,
                "has_more": has_more,
            }
        except Exception as e:
            logger.error(f"Error fetching feed: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch feed")

    def create_post(self, post_data: PostCreate, user_data: dict) -> dict:
        if post_data.org_id and not is_org_member(post_data.org_id, user_data, self.supabase):
            raise HTTPException(status_code=403, detail="You must be a member of this organization")
        try:
            result = self.supabase.table("post").insert({
                "user_id": user_data["id"],
                "content": post_data.content,
                "media_urls": [str(url) for url in post_data.media_urls],
                "visibility": post_data.visibility,
                "org_id": post_data.org_id,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create post")
            logger.info(f"Post {result.data[0]['id']} created by {user_data['id']}")
            return result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating post: {e}")
            raise HTTPException(status_code=500, detail="Failed to create post")

    def get_post(self, post_id: str, user_data: dict) -> dict:
        post = self._get_post_row(post_id, POST_SELECT)
        self.check_post_access(post, user_data)
        try:
            comments = self.supabase.table("post_comment")\
                .select(COMMENT_SELECT)\
                .eq("post_id", post_id)\
                .order("created_at")\
                .execute()
            return {**post, "comments": build_comment_tree(comments.data or [])}
        except Exception as e:
            logger.error(f"Error fetching comments for post {post_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch post")

    def toggle_like(self, post_id: str, user_id: str) -> dict:
        self._get_post_row(post_id, "id")
        try:
            existing = self.supabase.table("post_like")\
                .select("id")\
                .eq("post_id", post_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
            if existing.data:
                self.supabase.table("post_like")\
                    .delete()\
                    .eq("post_id", post_id)\
                    .eq("user_id", user_id)\
                    .execute()
                liked = False
            else:
                self.supabase.table("post_like").insert({"post_id": post_id, "user_id": user_id}).execute()
                liked = True
            return {"liked": liked, "likes_count": self._sync_counter("post", post_id, "likes_count", "post_like", "post_id")}
        except Exception as e:
            logger.error(f"Error toggling like on {post_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to like post")

    def share_post(self, share_data: ShareRequest, user_data: dict) -> dict:
        original = self._get_post_row(share_data.post_id)
        if original.get("visibility") == "private" and original.get("user_id") != user_data["id"]:
            raise HTTPException(status_code=403, detail="You cannot share private posts")
        try:
            result = self.supabase.table("post").insert({
                "user_id": user_data["id"],
                "content": share_data.content or share_content(original.get("content")),
                "media_urls": original.get("media_urls") or [],
                "visibility": "public",
                "org_id": None,
                "shared_post_id": share_data.post_id,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to share post")
            shared = result.data[0]
            self._sync_counter("post", share_data.post_id, "shares_count", "post", "shared_post_id")
            self.notifications.notify_unless_self(
                original.get("user_id"), user_data["id"], "share",
                "Your post was shared", "Someone shared your post",
                {"post_id": shared["id"], "original_post_id": share_data.post_id},
            )
            return {"post": shared, "original_post_id": share_data.post_id}
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error sharing post {share_data.post_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to share post")

    # Comments

    def _get_comment_row(self, comment_id: str, columns: str = "*") -> dict:
        result = self.supabase.table("post_comment")\
            .select(columns)\
            .eq("id", comment_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Comment not found")
        return result.data[0]

    def create_comment(self, comment_data: CommentCreate, user_data: dict) -> dict:
        post = self._get_post_row(comment_data.post_id, "id, user_id, visibility, org_id")
        self.check_post_access(post, user_data)

        parent = None
        if comment_data.parent_id:
            parent_result = self.supabase.table("post_comment")\
                .select("id, post_id, user_id")\
                .eq("id", comment_data.parent_id)\
                .limit(1)\
                .execute()
            if not parent_result.data:
                raise HTTPException(status_code=404, detail="Parent comment not found")
            parent = parent_result.data[0]
            if parent["post_id"] != comment_data.post_id:
                raise HTTPException(status_code=400, detail="Parent comment does not belong to this post")

        try:
            result = self.supabase.table("post_comment").insert({
                "post_id": comment_data.post_id,
                "user_id": user_data["id"],
                "content": comment_data.content,
                "parent_id": comment_data.parent_id,
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create comment")
            comment = result.data[0]
        except HTTPException:
            raise
        except Exception as e:
            logger.error(f"Error creating comment: {e}")
            raise HTTPException(status_code=500, detail="Failed to create comment")

        self._sync_counter("post", comment_data.post_id, "comments_count", "post_comment", "post_id")
        data = {"post_id": comment_data.post_id, "comment_id": comment["id"]}
        self.notifications.notify_unless_self(
            post.get("user_id"), user_data["id"], "comment",
            "New comment", "Someone commented on your post", data,
        )
        if parent and parent.get("user_id") != post.get("user_id"):
            self.notifications.notify_unless_self(
                parent.get("user_id"), user_data["id"], "reply",
                "New reply", "Someone replied to your comment", data,
            )
        return comment

    def _liked_comment_ids(self, comment_ids: List[str], user_id: str) -> set:
        if not comment_ids:
            return set()
        likes = self.supabase.table("comment_like")\
            .select("comment_id")\
            .in_("comment_id", comment_ids)\
            .eq("user_id", user_id)\
            .execute()
        return {like["comment_id"] for like in likes.data or []}

    def list_comments(self, post_id: str, user_data: dict, limit: int = 50, offset: int = 0) -> dict:
        post = self._get_post_row(post_id, "id, user_id, visibility, org_id")
        self.check_post_access(post, user_data)
        try:
            result = self.supabase.table("post_comment")\
                .select(COMMENT_SELECT, count="exact")\
                .eq("post_id", post_id)\
                .order("created_at")\
                .range(offset, offset + limit - 1)\
                .execute()
            comments = result.data or []
            liked = self._liked_comment_ids([c["id"] for c in comments], user_data["id"])
            return {
                "comments": build_comment_tree(comments, liked),
                "total": result.count or 0,
                "limit": limit,
                "offset": offset,
            }
        except Exception as e:
            logger.error(f"Error fetching comments for {post_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch comments")

    def get_comment(self, comment_id: str, user_data: dict) -> dict:
        comment = self._get_comment_row(comment_id, COMMENT_SELECT)
        post = self._get_post_row(comment["post_id"], "id, user_id, visibility, org_id")
        self.check_post_access(post, user_data)
        try:
            replies = self.supabase.table("post_comment")\
                .select(COMMENT_SELECT)\
                .eq("parent_id", comment_id)\
                .order("created_at")\
                .execute()
            # The requested comment is the root of this thread even when it is a reply itself
            thread = [{**comment, "parent_id": None}] + (replies.data or [])
            liked = self._liked_comment_ids([c["id"] for c in thread], user_data["id"])
            root = build_comment_tree(thread, liked)[0]
            root["parent_id"] = comment.get("parent_id")
            return root
        except Exception as e:
            logger.error(f"Error fetching comment thread {comment_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to fetch comment")

    def delete_comment(self, comment_id: str, user_id: str) -> None:
        comment = self._get_comment_row(comment_id, "id, post_id, user_id")
        if comment["user_id"] != user_id:
            raise HTTPException(status_code=403, detail="You can only delete your own comments")
        try:
            self.supabase.table("post_comment")\
                .delete()\
                .eq("id", comment_id)\
                .execute()
        except Exception as e:
            logger.error(f"Error deleting comment {comment_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to delete comment")
        self._sync_counter("post", comment["post_id"], "comments_count", "post_comment", "post_id")

    def toggle_comment_like(self, comment_id: str, user_id: str) -> Dict[str, Any]:
        comment = self._get_comment_row(comment_id, "id, post_id, user_id")
        try:
            existing = self.supabase.table("comment_like")\
                .select("id")\
                .eq("comment_id", comment_id)\
                .eq("user_id", user_id)\
                .limit(1)\
                .execute()
            if existing.data:
                self.supabase.table("comment_like")\
                    .delete()\
                    .eq("comment_id", comment_id)\
                    .eq("user_id", user_id)\
                    .execute()
                count = self._sync_counter("post_comment", comment_id, "likes_count", "comment_like", "comment_id")
                return {"action": "unliked", "likes_count": count, "has_liked": False}

            self.supabase.table("comment_like").insert({
                "comment_id": comment_id,
                "user_id": user_id,
                "created_at": datetime.utcnow().isoformat(),
            }).execute()
            count = self._sync_counter("post_comment", comment_id, "likes_count", "comment_like", "comment_id")
        except Exception as e:
            logger.error(f"Error toggling like on comment {comment_id}: {e}")
            raise HTTPException(status_code=500, detail="Failed to like comment")

        self.notifications.notify_unless_self(
            comment.get("user_id"), user_id, "comment_like",
            "New like", "Someone liked your comment",
            {"post_id": comment.get("post_id"), "comment_id": comment_id},
        )
        return {"action": "liked", "likes_count": count, "has_liked": True}
