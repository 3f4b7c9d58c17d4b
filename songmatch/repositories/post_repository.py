"""
Post repository implementation.

All reads return normalized PostRecord objects ordered newest first. Window
boundaries are passed in by the caller; this module never decides what
"today" means.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, delete, desc
from sqlalchemy.ext.asyncio import AsyncSession

from songmatch.models.database import Post
from songmatch.models.domain import PostRecord
from songmatch.models.normalization import normalize_post
from songmatch.repositories.base import SQLModelRepository
from songmatch.core.logging import get_logger

logger = get_logger(__name__)


class PostRepository(SQLModelRepository[Post]):
    """Repository for daily song posts."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Post)

    async def get_post(self, post_id: str) -> Optional[PostRecord]:
        """Get a single normalized post, or None."""
        post = await self.get_by_id(post_id)
        if post is None:
            return None
        return normalize_post(post)

    async def get_posts(self, post_ids: List[str]) -> List[PostRecord]:
        """Get several posts; missing ids are skipped."""
        posts = await self.get_by_ids(list(set(post_ids)))
        return [normalize_post(post) for post in posts]

    async def query_posts_by_author(
        self,
        user_id: str,
        after: Optional[datetime] = None,
        before: Optional[datetime] = None,
        since: Optional[datetime] = None
    ) -> List[PostRecord]:
        """
        Get posts written by a user.

        Args:
            user_id: Author id
            after: Only posts created strictly after this instant
            since: Only posts created at or after this instant
            before: Only posts created strictly before this instant

        Returns:
            Posts newest first
        """
        try:
            query = select(Post).where(Post.user_id == user_id)

            if after is not None:
                query = query.where(Post.created_at > after)

            if since is not None:
                query = query.where(Post.created_at >= since)

            if before is not None:
                query = query.where(Post.created_at < before)

            query = query.order_by(desc(Post.created_at))

            result = await self.session.execute(query)
            posts = result.scalars().all()

            logger.debug(
                "Author posts retrieved",
                user_id=user_id,
                after=after.isoformat() if after else None,
                count=len(posts)
            )

            return [normalize_post(post) for post in posts]

        except Exception as e:
            logger.error(
                "Error retrieving author posts",
                user_id=user_id,
                error=str(e),
                exc_info=True
            )
            raise

    async def query_recent_posts(
        self,
        after: datetime,
        exclude_author: Optional[str] = None,
        cap: Optional[int] = 100
    ) -> List[PostRecord]:
        """
        Get the most recent posts created after a window boundary.

        Args:
            after: Only posts created strictly after this instant
            exclude_author: Leave out posts by this user
            cap: Maximum number of posts to return, None for no limit

        Returns:
            Up to ``cap`` posts, newest first
        """
        try:
            query = select(Post).where(Post.created_at > after)

            if exclude_author is not None:
                query = query.where(Post.user_id != exclude_author)

            query = query.order_by(desc(Post.created_at), Post.id)

            if cap is not None:
                query = query.limit(cap)

            result = await self.session.execute(query)
            posts = result.scalars().all()

            logger.debug(
                "Recent posts retrieved",
                after=after.isoformat(),
                exclude_author=exclude_author,
                cap=cap,
                count=len(posts)
            )

            return [normalize_post(post) for post in posts]

        except Exception as e:
            logger.error(
                "Error retrieving recent posts",
                exclude_author=exclude_author,
                error=str(e),
                exc_info=True
            )
            raise

    async def get_expired_post_ids(self, before: datetime) -> List[str]:
        """Ids of posts created before the given window boundary."""
        try:
            query = select(Post.id).where(Post.created_at < before)
            result = await self.session.execute(query)
            return list(result.scalars().all())

        except Exception as e:
            logger.error("Error retrieving expired posts", error=str(e), exc_info=True)
            raise

    async def delete_posts(self, post_ids: List[str], commit: bool = True) -> int:
        """
        Delete posts in bulk.

        Returns:
            Number of rows deleted
        """
        if not post_ids:
            return 0

        try:
            query = delete(Post).where(Post.id.in_(post_ids))
            result = await self.session.execute(query)
            if commit:
                await self.session.commit()
            else:
                await self.session.flush()

            logger.info("Posts deleted", requested=len(post_ids), deleted=result.rowcount)
            return result.rowcount

        except Exception as e:
            await self.session.rollback()
            logger.error("Error deleting posts", count=len(post_ids), error=str(e), exc_info=True)
            raise
