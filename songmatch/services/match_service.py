"""
Match engine.

Two users match once each has accepted at least one post by the other. The
match row is keyed by the sorted user pair, so a pair can only ever be
matched once: a repeated or concurrent attempt ends in
MatchAlreadyExistsError instead of a second match.

Design Rationale:
- Reciprocity is checked against the author's posts, not a denormalized flag
- The existence check only short-circuits; the primary key is the real guard
- Display metadata of both users is captured at creation and not kept in sync
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from songmatch.core.clock import ResetWindow, utc_now
from songmatch.core.exceptions import MatchAlreadyExistsError, UserNotFoundError
from songmatch.core.logging import get_logger
from songmatch.models.database import match_id_for
from songmatch.models.domain import MatchRecord, MatchedUser, PostRecord
from songmatch.repositories.match_repository import MatchRepository
from songmatch.repositories.post_repository import PostRepository
from songmatch.repositories.swipe_repository import SwipeRepository
from songmatch.repositories.user_repository import UserRepository
from songmatch.services.notifications import (
    LoggingMatchNotifier,
    MatchCreatedEvent,
    MatchNotifier,
)

logger = get_logger(__name__)

RECENT_MATCH_DAYS = 7


@dataclass
class MatchStats:
    total_matches: int
    active_matches: int
    recent_matches: int


@dataclass
class MatchedUserPost:
    """An active post of a matched user, with the match it came through."""
    post: PostRecord
    author: MatchedUser
    match_id: str
    matched_at: datetime


class MatchService:
    """
    Detects mutual acceptance and manages the resulting matches.

    Args:
        user_repository: User store
        post_repository: Post store
        swipe_repository: Swipe ledger
        match_repository: Match store
        notifier: Receives an event for each created match
        window: Daily window used for "active posts" of matched users
    """

    def __init__(
        self,
        user_repository: UserRepository,
        post_repository: PostRepository,
        swipe_repository: SwipeRepository,
        match_repository: MatchRepository,
        notifier: Optional[MatchNotifier] = None,
        window: Optional[ResetWindow] = None
    ):
        self.user_repository = user_repository
        self.post_repository = post_repository
        self.swipe_repository = swipe_repository
        self.match_repository = match_repository
        self.notifier = notifier or LoggingMatchNotifier()
        self.window = window or ResetWindow.from_settings()

    async def is_reciprocated(self, user_a: str, user_b: str) -> bool:
        """
        Whether ``user_b`` has accepted any post authored by ``user_a``.

        Args:
            user_a: Author whose posts are checked
            user_b: User whose swipes are checked

        Returns:
            True if at least one such accept exists
        """
        author_posts = await self.post_repository.query_posts_by_author(user_a)
        if not author_posts:
            return False

        return await self.swipe_repository.has_accepted_any(
            user_b, [post.id for post in author_posts]
        )

    async def try_create_match(self, user_a: str, user_b: str) -> Optional[str]:
        """
        Create a match if ``user_b`` has already accepted one of ``user_a``'s posts.

        Called right after ``user_a`` accepted a post by ``user_b``.

        Args:
            user_a: User who just accepted
            user_b: Author of the accepted post

        Returns:
            The new match id, or None when there is no reciprocity or the
            check could not be completed

        Raises:
            MatchAlreadyExistsError: If the pair is already matched
        """
        if user_a == user_b:
            return None

        try:
            if not await self.is_reciprocated(user_a, user_b):
                logger.debug("No reciprocal accept", user_a=user_a, user_b=user_b)
                return None

            match = await self.create_match(user_a, user_b)
            return match.id

        except MatchAlreadyExistsError:
            raise

        except Exception as e:
            logger.error(
                "Error checking for match",
                user_a=user_a,
                user_b=user_b,
                error=str(e),
                exc_info=True
            )
            return None

    async def create_match(self, user_a: str, user_b: str) -> MatchRecord:
        """
        Create the match for a pair and emit a MatchCreatedEvent.

        Raises:
            MatchAlreadyExistsError: If the pair is already matched
            UserNotFoundError: If either user does not exist
        """
        if await self.match_repository.are_users_matched(user_a, user_b):
            raise MatchAlreadyExistsError(user_a, user_b, match_id=match_id_for(user_a, user_b))

        profiles = await self.user_repository.get_profiles([user_a, user_b])
        for user_id in (user_a, user_b):
            if user_id not in profiles:
                raise UserNotFoundError(user_id)

        users = {
            user_id: MatchedUser(
                display_name=profiles[user_id].display_name,
                photo_url=profiles[user_id].photo_url,
                bio=profiles[user_id].bio
            )
            for user_id in (user_a, user_b)
        }

        match = await self.match_repository.create_match(user_a, user_b, users)

        logger.info("Match created", match_id=match.id, user_ids=match.user_ids)

        await self._notify(match)
        return match

    async def _notify(self, match: MatchRecord) -> None:
        event = MatchCreatedEvent(
            match_id=match.id,
            user_ids=list(match.user_ids),
            created_at=match.created_at
        )
        try:
            await self.notifier.match_created(event)
        except Exception as e:
            logger.warning("Match notification failed", match_id=match.id, error=str(e))

    async def get_user_matches(self, user_id: str) -> List[MatchRecord]:
        """
        Active matches of a user, most recently active first.

        Matches with users who have since become friends are left out.

        Args:
            user_id: ID of the user

        Returns:
            List of matches, empty on store failure
        """
        try:
            matches = await self.match_repository.get_matches_for_user(user_id, active_only=True)
            friend_ids = await self.user_repository.get_friend_ids(user_id)

            visible = [
                match for match in matches
                if match.other_user(user_id) not in friend_ids
            ]
            visible.sort(key=lambda m: m.last_message or m.created_at, reverse=True)

            logger.debug(
                "User matches assembled",
                user_id=user_id,
                count=len(visible),
                hidden_friends=len(matches) - len(visible)
            )

            return visible

        except Exception as e:
            logger.error("Error fetching user matches", user_id=user_id, error=str(e), exc_info=True)
            return []

    async def get_match(self, match_id: str) -> Optional[MatchRecord]:
        return await self.match_repository.get_match(match_id)

    async def get_match_stats(self, user_id: str, now: Optional[datetime] = None) -> MatchStats:
        """Counts over the user's visible matches; recent means the last seven days."""
        matches = await self.get_user_matches(user_id)
        week_ago = (now or utc_now()) - timedelta(days=RECENT_MATCH_DAYS)

        return MatchStats(
            total_matches=len(matches),
            active_matches=sum(1 for match in matches if match.is_active),
            recent_matches=sum(1 for match in matches if match.created_at > week_ago)
        )

    async def get_matched_users_posts(
        self,
        user_id: str,
        now: Optional[datetime] = None
    ) -> List[MatchedUserPost]:
        """
        Active posts of everyone the user is matched with, newest first.

        Args:
            user_id: ID of the user
            now: Reference time for the daily window

        Returns:
            List of MatchedUserPost, empty on store failure
        """
        matches = await self.get_user_matches(user_id)
        if not matches:
            return []

        window_start = self.window.current_window_start(now)
        matched_posts: List[MatchedUserPost] = []

        try:
            for match in matches:
                other_id = match.other_user(user_id)
                if other_id is None:
                    continue

                author = match.users.get(other_id) or MatchedUser(display_name="Matched User")
                posts = await self.post_repository.query_posts_by_author(other_id, after=window_start)

                for post in posts:
                    matched_posts.append(MatchedUserPost(
                        post=post,
                        author=author,
                        match_id=match.id,
                        matched_at=match.created_at
                    ))

        except Exception as e:
            logger.error("Error fetching matched users posts", user_id=user_id, error=str(e), exc_info=True)
            return []

        matched_posts.sort(key=lambda item: item.post.created_at, reverse=True)
        return matched_posts
