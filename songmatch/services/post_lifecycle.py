"""
Daily post lifecycle.

A post is active until the next rollover. Expired posts, together with the
swipes that reference them, are removed by ``cleanup_expired_posts``, which
is meant to run on a schedule. Posts of past months can be listed grouped
by month in the rollover timezone.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

from songmatch.core.clock import ResetWindow
from songmatch.core.logging import get_logger
from songmatch.models.domain import PostRecord
from songmatch.repositories.post_repository import PostRepository
from songmatch.repositories.swipe_repository import SwipeRepository

logger = get_logger(__name__)


@dataclass
class CleanupResult:
    posts_deleted: int = 0
    swipes_deleted: int = 0


class PostLifecycleService:
    """
    Window-aware post queries and expiry cleanup.

    Args:
        post_repository: Post store
        swipe_repository: Swipe ledger
        window: Daily window
    """

    def __init__(
        self,
        post_repository: PostRepository,
        swipe_repository: SwipeRepository,
        window: Optional[ResetWindow] = None
    ):
        self.post_repository = post_repository
        self.swipe_repository = swipe_repository
        self.window = window or ResetWindow.from_settings()

    async def has_posted_today(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """Whether the user already has a post in the current window."""
        posts = await self.post_repository.query_posts_by_author(user_id)
        last_post_at = posts[0].created_at if posts else None
        return self.window.has_posted_in_window(last_post_at, now)

    async def get_active_posts(self, now: Optional[datetime] = None) -> List[PostRecord]:
        """
        Every post of the current window, newest first.

        Returns:
            List of posts, empty on store failure
        """
        try:
            return await self.post_repository.query_recent_posts(
                after=self.window.current_window_start(now),
                cap=None
            )
        except Exception as e:
            logger.error("Error fetching active posts", error=str(e), exc_info=True)
            return []

    async def cleanup_expired_posts(self, now: Optional[datetime] = None) -> CleanupResult:
        """
        Delete posts created before the current window and their swipes.

        Posts and swipes are removed in one transaction.

        Args:
            now: Reference time for the daily window

        Returns:
            CleanupResult with the number of deleted rows
        """
        window_start = self.window.current_window_start(now)
        expired_ids = await self.post_repository.get_expired_post_ids(before=window_start)

        if not expired_ids:
            logger.info("No expired posts to clean up", window_start=window_start.isoformat())
            return CleanupResult()

        swipes_deleted = await self.swipe_repository.delete_for_posts(expired_ids, commit=False)
        posts_deleted = await self.post_repository.delete_posts(expired_ids, commit=True)

        logger.info(
            "Expired posts cleaned up",
            window_start=window_start.isoformat(),
            posts_deleted=posts_deleted,
            swipes_deleted=swipes_deleted
        )

        return CleanupResult(posts_deleted=posts_deleted, swipes_deleted=swipes_deleted)

    async def get_archived_posts(
        self,
        user_id: str,
        now: Optional[datetime] = None
    ) -> Dict[str, List[PostRecord]]:
        """
        Posts of a user from before the current month, grouped by month.

        Args:
            user_id: Author id
            now: Reference time for the current month

        Returns:
            Mapping of ``YYYY-MM`` to posts, newest month and post first;
            empty on store failure
        """
        month_start = self.window.current_month_start(now)

        try:
            posts = await self.post_repository.query_posts_by_author(user_id, before=month_start)
        except Exception as e:
            logger.error("Error fetching archived posts", user_id=user_id, error=str(e), exc_info=True)
            return {}

        archive: Dict[str, List[PostRecord]] = {}
        for post in posts:
            archive.setdefault(self.window.month_key(post.created_at), []).append(post)

        logger.debug("Archived posts grouped", user_id=user_id, months=len(archive), posts=len(posts))
        return archive

    async def get_posts_by_month(self, user_id: str, year: int, month: int) -> List[PostRecord]:
        """
        Posts of a user created during one calendar month, newest first.

        Raises:
            ValueError: If ``month`` is not between 1 and 12
        """
        if not 1 <= month <= 12:
            raise ValueError("month must be between 1 and 12")

        try:
            return await self.post_repository.query_posts_by_author(
                user_id,
                since=self.window.month_start(year, month),
                before=self.window.next_month_start(year, month)
            )
        except Exception as e:
            logger.error(
                "Error fetching posts by month",
                user_id=user_id,
                year=year,
                month=month,
                error=str(e),
                exc_info=True
            )
            return []
