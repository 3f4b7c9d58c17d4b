"""
Swipe recording and swipe-derived queries.

Every swipe is appended to the ledger. An accept immediately runs the match
engine for the swiper and the post's author.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from songmatch.core.clock import ResetWindow
from songmatch.core.exceptions import MatchAlreadyExistsError
from songmatch.core.logging import get_logger
from songmatch.models.database import Swipe, SwipeDirection
from songmatch.repositories.match_repository import MatchRepository
from songmatch.repositories.post_repository import PostRepository
from songmatch.repositories.swipe_repository import SwipeRepository
from songmatch.repositories.user_repository import UserRepository
from songmatch.services.match_service import MatchService

logger = get_logger(__name__)


@dataclass
class SwipeStats:
    total_swipes: int
    accepts: int
    rejects: int

    @property
    def accept_ratio(self) -> float:
        if self.total_swipes == 0:
            return 0.0
        return self.accepts / self.total_swipes


class SwipeService:
    """
    Records swipes and answers questions about a user's swipes.

    Args:
        swipe_repository: Swipe ledger
        match_service: Match engine run on every accept
        user_repository: User store, for the unswiped listing exclusions
        post_repository: Post store, for the unswiped listing
        match_repository: Match store, for the unswiped listing exclusions
        window: Daily window deciding which posts are active
    """

    def __init__(
        self,
        swipe_repository: SwipeRepository,
        match_service: MatchService,
        user_repository: UserRepository,
        post_repository: PostRepository,
        match_repository: MatchRepository,
        window: Optional[ResetWindow] = None
    ):
        self.swipe_repository = swipe_repository
        self.match_service = match_service
        self.user_repository = user_repository
        self.post_repository = post_repository
        self.match_repository = match_repository
        self.window = window or ResetWindow.from_settings()

    async def record_swipe(
        self,
        swiper_id: str,
        post_id: str,
        post_author_id: str,
        direction: SwipeDirection
    ) -> Optional[str]:
        """
        Append a swipe and, on accept, try to create a match.

        Args:
            swiper_id: User who swiped
            post_id: Post that was swiped
            post_author_id: Author of the post
            direction: Accept or reject

        Returns:
            Id of a newly created match, otherwise None
        """
        direction = SwipeDirection(direction)

        await self.swipe_repository.append(swiper_id, post_id, post_author_id, direction)

        logger.info(
            "Swipe recorded",
            swiper_id=swiper_id,
            post_id=post_id,
            post_author_id=post_author_id,
            direction=direction.value
        )

        if direction is not SwipeDirection.ACCEPT:
            return None

        try:
            return await self.match_service.try_create_match(swiper_id, post_author_id)
        except MatchAlreadyExistsError as e:
            logger.debug("Users already matched", swiper_id=swiper_id, match_id=e.match_id)
            return None

    async def has_user_swiped(self, user_id: str, post_id: str) -> bool:
        try:
            return await self.swipe_repository.has_swiped(user_id, post_id)
        except Exception as e:
            logger.warning("Swipe lookup failed", user_id=user_id, post_id=post_id, error=str(e))
            return False

    async def get_swipe_history(self, user_id: str, limit: int = 50) -> List[Swipe]:
        """Most recent swipes of a user, empty on store failure."""
        try:
            return await self.swipe_repository.get_history(user_id, limit=limit)
        except Exception as e:
            logger.warning("Swipe history lookup failed", user_id=user_id, error=str(e))
            return []

    async def get_swipe_stats(self, user_id: str) -> SwipeStats:
        """
        Accept and reject counts over every swipe of a user.

        Returns:
            SwipeStats, all zero on store failure
        """
        try:
            counts = await self.swipe_repository.get_direction_counts(user_id)
        except Exception as e:
            logger.warning("Swipe stats lookup failed", user_id=user_id, error=str(e))
            counts = {}

        accepts = counts.get(SwipeDirection.ACCEPT.value, 0)
        rejects = counts.get(SwipeDirection.REJECT.value, 0)
        return SwipeStats(total_swipes=accepts + rejects, accepts=accepts, rejects=rejects)

    async def get_unswiped_post_ids(
        self,
        user_id: str,
        now: Optional[datetime] = None
    ) -> List[str]:
        """
        Active posts the user has not swiped on yet, without scoring.

        Own posts and posts by friends or matched users are left out.

        Args:
            user_id: ID of the user
            now: Reference time for the daily window

        Returns:
            Post ids newest first, empty on store failure
        """
        try:
            friend_ids = await self.user_repository.get_friend_ids(user_id)
            matched_ids = await self.match_repository.get_matched_user_ids(user_id)
            excluded = friend_ids | matched_ids

            swiped = await self.swipe_repository.get_swiped_post_ids(user_id)

            posts = await self.post_repository.query_recent_posts(
                after=self.window.current_window_start(now),
                exclude_author=user_id,
                cap=None
            )

            unswiped = [
                post.id for post in posts
                if post.id not in swiped and post.user_id not in excluded
            ]

            logger.debug(
                "Unswiped posts listed",
                user_id=user_id,
                excluded_users=len(excluded),
                count=len(unswiped)
            )

            return unswiped

        except Exception as e:
            logger.error("Error listing unswiped posts", user_id=user_id, error=str(e), exc_info=True)
            return []
