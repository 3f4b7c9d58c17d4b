"""
Swipe ledger repository.

The ledger is append-only. A user may end up with several rows for the same
post; readers that need a judgement take the most recent row per post.
"""

from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import select, delete, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from songmatch.core.clock import utc_now
from songmatch.models.database import Swipe, SwipeDirection
from songmatch.repositories.base import SQLModelRepository
from songmatch.core.logging import get_logger

logger = get_logger(__name__)


def latest_per_post(swipes: Iterable[Swipe]) -> Dict[str, Swipe]:
    """
    Reduce swipes to the most recent one per post.

    Expects ``swipes`` ordered newest first.
    """
    latest: Dict[str, Swipe] = {}
    for swipe in swipes:
        latest.setdefault(swipe.post_id, swipe)
    return latest


class SwipeRepository(SQLModelRepository[Swipe]):
    """Repository for swipe ledger entries."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Swipe)

    def _newest_first(self, query):
        return query.order_by(desc(Swipe.timestamp), desc(Swipe.id))

    async def append(
        self,
        swiper_id: str,
        post_id: str,
        post_user_id: str,
        direction: SwipeDirection
    ) -> Swipe:
        """
        Append a swipe to the ledger unconditionally.

        Args:
            swiper_id: User who swiped
            post_id: Post that was swiped
            post_user_id: Author of the post
            direction: Accept or reject

        Returns:
            The stored swipe
        """
        swipe = Swipe(
            swiper_id=swiper_id,
            post_id=post_id,
            post_user_id=post_user_id,
            direction=SwipeDirection(direction).value,
            timestamp=utc_now()
        )
        return await self.create(swipe)

    async def get_swiped_post_ids(self, swiper_id: str) -> Set[str]:
        """
        Get every post id the user has swiped on, in any direction.

        Args:
            swiper_id: ID of the user

        Returns:
            Set of post ids
        """
        try:
            query = select(Swipe.post_id).where(Swipe.swiper_id == swiper_id).distinct()
            result = await self.session.execute(query)
            post_ids = set(result.scalars().all())

            logger.debug("Swiped post ids retrieved", swiper_id=swiper_id, count=len(post_ids))

            return post_ids

        except Exception as e:
            logger.error(
                "Error retrieving swiped post ids",
                swiper_id=swiper_id,
                error=str(e),
                exc_info=True
            )
            raise

    async def get_latest_swipes(
        self,
        swiper_id: str,
        post_ids: Optional[List[str]] = None
    ) -> Dict[str, Swipe]:
        """
        Get the effective (most recent) swipe per post for a user.

        Args:
            swiper_id: ID of the user
            post_ids: Restrict to these posts; None means all posts

        Returns:
            Mapping of post id to its most recent swipe
        """
        if post_ids is not None and not post_ids:
            return {}

        try:
            query = select(Swipe).where(Swipe.swiper_id == swiper_id)

            if post_ids is not None:
                query = query.where(Swipe.post_id.in_(post_ids))

            result = await self.session.execute(self._newest_first(query))
            return latest_per_post(result.scalars().all())

        except Exception as e:
            logger.error(
                "Error retrieving latest swipes",
                swiper_id=swiper_id,
                error=str(e),
                exc_info=True
            )
            raise

    async def get_accepted_post_ids(self, swiper_id: str, limit: int = 20) -> List[str]:
        """
        Get the posts the user most recently accepted.

        A post later rejected by the same user does not count.

        Args:
            swiper_id: ID of the user
            limit: Maximum number of post ids

        Returns:
            Post ids, most recently accepted first
        """
        latest = await self.get_latest_swipes(swiper_id)
        accepted = [
            post_id for post_id, swipe in latest.items()
            if swipe.direction == SwipeDirection.ACCEPT.value
        ]
        return accepted[:limit]

    async def has_accepted_any(self, swiper_id: str, post_ids: List[str]) -> bool:
        """
        Whether the user's effective judgement on any of the posts is accept.

        Args:
            swiper_id: ID of the user
            post_ids: Candidate posts

        Returns:
            True if at least one post is accepted
        """
        latest = await self.get_latest_swipes(swiper_id, post_ids)
        return any(
            swipe.direction == SwipeDirection.ACCEPT.value
            for swipe in latest.values()
        )

    async def has_swiped(self, swiper_id: str, post_id: str) -> bool:
        try:
            query = (
                select(Swipe.id)
                .where(Swipe.swiper_id == swiper_id, Swipe.post_id == post_id)
                .limit(1)
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none() is not None

        except Exception as e:
            logger.error(
                "Error checking swipe",
                swiper_id=swiper_id,
                post_id=post_id,
                error=str(e),
                exc_info=True
            )
            raise

    async def get_history(self, swiper_id: str, limit: int = 50) -> List[Swipe]:
        """
        Get the user's swipes, newest first.

        Args:
            swiper_id: ID of the user
            limit: Maximum number of swipes

        Returns:
            List of swipes
        """
        try:
            query = self._newest_first(
                select(Swipe).where(Swipe.swiper_id == swiper_id)
            ).limit(limit)
            result = await self.session.execute(query)
            return list(result.scalars().all())

        except Exception as e:
            logger.error(
                "Error retrieving swipe history",
                swiper_id=swiper_id,
                error=str(e),
                exc_info=True
            )
            raise

    async def get_direction_counts(self, swiper_id: str) -> Dict[str, int]:
        """
        Count a user's swipes by direction.

        Returns:
            Mapping of direction value to count
        """
        try:
            query = (
                select(Swipe.direction, func.count(Swipe.id))
                .where(Swipe.swiper_id == swiper_id)
                .group_by(Swipe.direction)
            )
            result = await self.session.execute(query)
            counts = dict(result.all())

            logger.debug("Swipe counts retrieved", swiper_id=swiper_id, counts=counts)

            return counts

        except Exception as e:
            logger.error(
                "Error counting swipes",
                swiper_id=swiper_id,
                error=str(e),
                exc_info=True
            )
            raise

    async def delete_for_posts(self, post_ids: List[str], commit: bool = True) -> int:
        """
        Delete every swipe that references the given posts.

        Returns:
            Number of rows deleted
        """
        if not post_ids:
            return 0

        try:
            query = delete(Swipe).where(Swipe.post_id.in_(post_ids))
            result = await self.session.execute(query)
            if commit:
                await self.session.commit()
            else:
                await self.session.flush()

            logger.info("Swipes deleted for expired posts", posts=len(post_ids), deleted=result.rowcount)
            return result.rowcount

        except Exception as e:
            await self.session.rollback()
            logger.error("Error deleting swipes", posts=len(post_ids), error=str(e), exc_info=True)
            raise
