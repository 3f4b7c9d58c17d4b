"""
User repository implementation with domain-specific methods.

Reads return normalized UserProfile objects; learned music preferences are
written back wholesale.
"""

from typing import List, Optional, Dict, Set

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from songmatch.core.clock import utc_now
from songmatch.models.database import User
from songmatch.models.domain import MusicPreferences, UserProfile
from songmatch.models.normalization import normalize_user
from songmatch.repositories.base import SQLModelRepository
from songmatch.core.logging import get_logger

logger = get_logger(__name__)


class UserRepository(SQLModelRepository[User]):
    """Repository for User documents."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, User)

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        """
        Get the normalized profile of a user.

        Args:
            user_id: ID of the user

        Returns:
            UserProfile or None if the user does not exist
        """
        user = await self.get_by_id(user_id)
        if user is None:
            return None
        return normalize_user(user)

    async def get_profiles(self, user_ids: List[str]) -> Dict[str, UserProfile]:
        """
        Get profiles for several users in one query.

        Args:
            user_ids: IDs to fetch

        Returns:
            Mapping of user id to profile; unknown ids are absent
        """
        users = await self.get_by_ids(list(set(user_ids)))
        return {user.id: normalize_user(user) for user in users}

    async def get_friend_ids(self, user_id: str) -> Set[str]:
        """
        Get the friend ids of a user.

        Args:
            user_id: ID of the user

        Returns:
            Set of friend ids, empty if the user does not exist
        """
        user = await self.get_by_id(user_id)
        if user is None:
            return set()
        return set(user.friends or [])

    async def set_music_preferences(
        self,
        user_id: str,
        preferences: MusicPreferences,
        commit: bool = True
    ) -> bool:
        """
        Replace a user's learned music preferences.

        Args:
            user_id: ID of the user
            preferences: New preferences; replaces the stored value entirely
            commit: Whether to commit the transaction immediately

        Returns:
            True if a user row was updated
        """
        try:
            query = (
                update(User)
                .where(User.id == user_id)
                .values(
                    music_preferences=preferences.model_dump(mode="json", exclude_none=True),
                    last_preferences_update=utc_now()
                )
            )

            result = await self.session.execute(query)
            if commit:
                await self.session.commit()
            else:
                await self.session.flush()

            updated = result.rowcount > 0

            logger.info(
                "Music preferences updated",
                user_id=user_id,
                genres=len(preferences.genres),
                mood_tags=len(preferences.mood_tags),
                updated=updated
            )

            return updated

        except Exception as e:
            await self.session.rollback()
            logger.error(
                "Error updating music preferences",
                user_id=user_id,
                error=str(e),
                exc_info=True
            )
            raise
