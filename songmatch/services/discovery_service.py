"""
Discovery feed assembly.

The feed for a viewer is built in two stages:
1. Candidate selection: posts of the current daily window, minus the viewer's
   own posts, posts already swiped, and posts by friends or matched users
2. Ranking: every candidate is scored by the CompatibilityScorer, sorted by
   score and cut to the feed size

Design Rationale:
- Preference learning runs first but can never break the feed
- A missing viewer profile is an error; every other store failure yields an
  empty feed
- Candidates whose author vanished are skipped rather than reported
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from songmatch.core.clock import ResetWindow
from songmatch.core.config import get_settings
from songmatch.core.exceptions import UserNotFoundError
from songmatch.core.logging import get_logger
from songmatch.models.domain import PostRecord
from songmatch.repositories.match_repository import MatchRepository
from songmatch.repositories.post_repository import PostRepository
from songmatch.repositories.swipe_repository import SwipeRepository
from songmatch.repositories.user_repository import UserRepository
from songmatch.services.compatibility import CompatibilityScorer
from songmatch.services.preference_service import PreferenceService

logger = get_logger(__name__)


@dataclass
class FeedEntry:
    """A ranked post in a viewer's discovery feed."""
    post: PostRecord
    score: float


class DiscoveryService:
    """
    Assembles ranked discovery feeds.

    Args:
        user_repository: User store
        post_repository: Post store
        swipe_repository: Swipe ledger
        match_repository: Match store
        preference_service: Refreshes the viewer's learned preferences
        scorer: Compatibility scorer
        window: Daily window deciding which posts are eligible
        result_cap: Maximum feed size
        fetch_cap: Maximum number of recent posts considered
    """

    def __init__(
        self,
        user_repository: UserRepository,
        post_repository: PostRepository,
        swipe_repository: SwipeRepository,
        match_repository: MatchRepository,
        preference_service: PreferenceService,
        scorer: Optional[CompatibilityScorer] = None,
        window: Optional[ResetWindow] = None,
        result_cap: Optional[int] = None,
        fetch_cap: Optional[int] = None
    ):
        settings = get_settings()

        self.user_repository = user_repository
        self.post_repository = post_repository
        self.swipe_repository = swipe_repository
        self.match_repository = match_repository
        self.preference_service = preference_service
        self.scorer = scorer or CompatibilityScorer()
        self.window = window or ResetWindow.from_settings(settings)
        self.result_cap = result_cap or settings.FEED_RESULT_CAP
        self.fetch_cap = fetch_cap or settings.FEED_FETCH_CAP

    async def assemble_feed(
        self,
        viewer_id: str,
        now: Optional[datetime] = None
    ) -> List[FeedEntry]:
        """
        Build the ranked discovery feed of a viewer.

        Args:
            viewer_id: ID of the viewer
            now: Reference time for the daily window

        Returns:
            At most ``result_cap`` entries, best score first; ties keep
            recency order

        Raises:
            UserNotFoundError: If the viewer has no profile
        """
        # Refresh failures are reported in the result and deliberately ignored
        _ = await self.preference_service.refresh_preferences(viewer_id)

        try:
            viewer = await self.user_repository.get_profile(viewer_id)
            if viewer is None:
                raise UserNotFoundError(viewer_id)

            matched_ids = await self.match_repository.get_matched_user_ids(viewer_id)
            excluded = set(viewer.friends) | matched_ids

            swiped = await self.swipe_repository.get_swiped_post_ids(viewer_id)

            window_start = self.window.current_window_start(now)
            posts = await self.post_repository.query_recent_posts(
                after=window_start,
                exclude_author=viewer_id,
                cap=self.fetch_cap
            )

            candidates = []
            skipped_swiped = 0
            skipped_excluded = 0

            for post in posts:
                if post.id in swiped:
                    skipped_swiped += 1
                elif post.user_id in excluded or post.user_id == viewer_id:
                    skipped_excluded += 1
                else:
                    candidates.append(post)

            authors = await self.user_repository.get_profiles(
                [post.user_id for post in candidates]
            )

            entries = []
            skipped_missing_author = 0

            for post in candidates:
                author = authors.get(post.user_id)
                if author is None:
                    skipped_missing_author += 1
                    continue

                entries.append(FeedEntry(post=post, score=self.scorer.score(viewer, post, author)))

            # sorted() is stable, so equal scores keep the newest-first order
            entries = sorted(entries, key=lambda entry: entry.score, reverse=True)
            feed = entries[:self.result_cap]

            logger.info(
                "Discovery feed assembled",
                viewer_id=viewer_id,
                fetched=len(posts),
                skipped_swiped=skipped_swiped,
                skipped_excluded=skipped_excluded,
                skipped_missing_author=skipped_missing_author,
                returned=len(feed)
            )

            return feed

        except UserNotFoundError:
            raise

        except Exception as e:
            logger.error(
                "Error assembling discovery feed",
                viewer_id=viewer_id,
                error=str(e),
                exc_info=True
            )
            return []
