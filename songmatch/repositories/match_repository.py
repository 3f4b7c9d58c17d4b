"""
Match repository implementation.

A match row is keyed by the sorted user pair, and the pair columns carry a
unique index. Creating the same match twice, even from two concurrent
requests, fails in the database rather than producing a second row.
"""

from datetime import datetime
from typing import Dict, List, Optional, Set

from sqlalchemy import select, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from songmatch.core.clock import utc_now
from songmatch.core.exceptions import MatchAlreadyExistsError
from songmatch.models.database import Match, match_id_for
from songmatch.models.domain import MatchRecord, MatchedUser
from songmatch.models.normalization import normalize_match
from songmatch.repositories.base import SQLModelRepository
from songmatch.core.logging import get_logger

logger = get_logger(__name__)


def _involving(user_id: str):
    return or_(Match.user_a == user_id, Match.user_b == user_id)


class MatchRepository(SQLModelRepository[Match]):
    """Repository for matches between two users."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, Match)

    async def are_users_matched(self, user_a: str, user_b: str) -> bool:
        """
        Whether an active match exists for the pair, in either order.

        Args:
            user_a: First user
            user_b: Second user

        Returns:
            True if an active match exists
        """
        first, second = sorted((user_a, user_b))

        try:
            query = (
                select(Match.id)
                .where(and_(Match.user_a == first, Match.user_b == second))
                .where(Match.is_active.is_(True))
                .limit(1)
            )
            result = await self.session.execute(query)
            return result.scalar_one_or_none() is not None

        except Exception as e:
            logger.error(
                "Error checking match",
                user_a=user_a,
                user_b=user_b,
                error=str(e),
                exc_info=True
            )
            raise

    async def create_match(
        self,
        user_a: str,
        user_b: str,
        users: Dict[str, MatchedUser],
        created_at: Optional[datetime] = None
    ) -> MatchRecord:
        """
        Insert the match for a user pair.

        Args:
            user_a: First user
            user_b: Second user
            users: Display metadata of both users, keyed by user id
            created_at: Creation time, defaults to now

        Returns:
            The created match

        Raises:
            MatchAlreadyExistsError: If the pair already has a match row
        """
        first, second = sorted((user_a, user_b))
        match_id = match_id_for(user_a, user_b)
        created_at = created_at or utc_now()

        match = Match(
            id=match_id,
            user_a=first,
            user_b=second,
            user_ids=[user_a, user_b],
            users={uid: meta.model_dump(mode="json") for uid, meta in users.items()},
            is_active=True,
            created_at=created_at,
            last_message=created_at
        )

        try:
            self.session.add(match)
            await self.session.commit()
            await self.session.refresh(match)

        except IntegrityError:
            await self.session.rollback()
            logger.info("Match already exists", match_id=match_id)
            raise MatchAlreadyExistsError(user_a, user_b, match_id=match_id)

        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Error creating match",
                match_id=match_id,
                error=str(e),
                exc_info=True
            )
            raise

        logger.info("Match stored", match_id=match_id, user_ids=[user_a, user_b])
        return normalize_match(match)

    async def get_match(self, match_id: str) -> Optional[MatchRecord]:
        match = await self.get_by_id(match_id)
        if match is None:
            return None
        return normalize_match(match)

    async def get_matches_for_user(
        self,
        user_id: str,
        active_only: bool = False
    ) -> List[MatchRecord]:
        """
        Get every match the user is part of.

        Args:
            user_id: ID of the user
            active_only: Leave out inactive matches

        Returns:
            List of matches, unordered
        """
        try:
            query = select(Match).where(_involving(user_id))

            if active_only:
                query = query.where(Match.is_active.is_(True))

            result = await self.session.execute(
                query.execution_options(populate_existing=True)
            )
            matches = result.scalars().all()

            logger.debug(
                "User matches retrieved",
                user_id=user_id,
                active_only=active_only,
                count=len(matches)
            )

            return [normalize_match(match) for match in matches]

        except Exception as e:
            logger.error(
                "Error retrieving user matches",
                user_id=user_id,
                error=str(e),
                exc_info=True
            )
            raise

    async def get_matched_user_ids(self, user_id: str, active_only: bool = False) -> Set[str]:
        """
        Ids of everyone the user has a match with.

        Args:
            user_id: ID of the user
            active_only: Leave out inactive matches

        Returns:
            Set of user ids
        """
        try:
            query = select(Match.user_a, Match.user_b).where(_involving(user_id))

            if active_only:
                query = query.where(Match.is_active.is_(True))

            result = await self.session.execute(query)

            matched = set()
            for user_a, user_b in result.all():
                matched.add(user_b if user_a == user_id else user_a)

            return matched

        except Exception as e:
            logger.error(
                "Error retrieving matched user ids",
                user_id=user_id,
                error=str(e),
                exc_info=True
            )
            raise

