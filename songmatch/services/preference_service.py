"""
Preference learning from a user's recent accepts.

The learned ``music_preferences`` of a user are rebuilt from the last N posts
they accepted and written back as a whole; nothing is merged into the previous
value.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np

from songmatch.core.config import get_settings
from songmatch.core.logging import get_logger
from songmatch.models.domain import (
    AUDIO_FEATURE_NAMES,
    AudioFeatures,
    MusicPreferences,
    PostRecord,
)
from songmatch.models.normalization import normalize_user
from songmatch.repositories.post_repository import PostRepository
from songmatch.repositories.swipe_repository import SwipeRepository
from songmatch.repositories.user_repository import UserRepository

logger = get_logger(__name__)


@dataclass
class PreferenceRefreshResult:
    """
    Outcome of a preference refresh.

    Refreshing never raises; a failure is reported through ``error`` and the
    caller decides whether it matters.
    """
    updated: bool
    sample_size: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class PreferenceSnapshot:
    music_preferences: Optional[MusicPreferences]
    last_preferences_update: Optional[datetime]

    @property
    def has_preferences(self) -> bool:
        return self.music_preferences is not None


def _unique(values: List[str]) -> List[str]:
    return list(dict.fromkeys(values))


def average_audio_features(samples: List[AudioFeatures]) -> Optional[AudioFeatures]:
    """
    Element-wise mean over the samples that carry each feature.

    A feature no sample carries is left out; None when nothing is left.
    """
    averages: Dict[str, float] = {}

    for name in AUDIO_FEATURE_NAMES:
        values = [
            getattr(sample, name) for sample in samples
            if getattr(sample, name) is not None
        ]
        if values:
            averages[name] = float(np.mean(values))

    if not averages:
        return None
    return AudioFeatures(**averages)


def learn_preferences(posts: List[PostRecord]) -> MusicPreferences:
    """
    Derive music preferences from accepted posts.

    Args:
        posts: Accepted posts, most recent first

    Returns:
        Deduplicated genres and mood tags plus the averaged audio features
    """
    genres: List[str] = []
    mood_tags: List[str] = []
    samples: List[AudioFeatures] = []

    for post in posts:
        genres.extend(post.song.genres)
        mood_tags.extend(post.mood_tags)
        if post.song.audio_features is not None:
            samples.append(post.song.audio_features)

    return MusicPreferences(
        genres=_unique(genres),
        audio_features=average_audio_features(samples),
        mood_tags=_unique(mood_tags),
    )


class PreferenceService:
    """
    Rebuilds and exposes learned music preferences.

    Args:
        user_repository: User store
        post_repository: Post store
        swipe_repository: Swipe ledger
        sample_size: Number of most recent accepts to learn from
    """

    def __init__(
        self,
        user_repository: UserRepository,
        post_repository: PostRepository,
        swipe_repository: SwipeRepository,
        sample_size: Optional[int] = None
    ):
        self.user_repository = user_repository
        self.post_repository = post_repository
        self.swipe_repository = swipe_repository
        self.sample_size = sample_size or get_settings().PREFERENCE_SAMPLE_SIZE

    async def refresh_preferences(self, user_id: str) -> PreferenceRefreshResult:
        """
        Recompute a user's music preferences from their recent accepts.

        A user without accepted posts that still exist keeps the stored
        preferences untouched.

        Args:
            user_id: ID of the user

        Returns:
            PreferenceRefreshResult; store failures are returned, not raised
        """
        try:
            accepted_ids = await self.swipe_repository.get_accepted_post_ids(
                user_id, limit=self.sample_size
            )
            if not accepted_ids:
                logger.debug("No accepted posts, preferences unchanged", user_id=user_id)
                return PreferenceRefreshResult(updated=False)

            posts_by_id = {
                post.id: post
                for post in await self.post_repository.get_posts(accepted_ids)
            }
            posts = [posts_by_id[post_id] for post_id in accepted_ids if post_id in posts_by_id]
            if not posts:
                logger.debug(
                    "Accepted posts no longer exist, preferences unchanged",
                    user_id=user_id,
                    accepted=len(accepted_ids)
                )
                return PreferenceRefreshResult(updated=False)

            preferences = learn_preferences(posts)
            await self.user_repository.set_music_preferences(user_id, preferences)

            logger.info(
                "Music preferences refreshed",
                user_id=user_id,
                sample_size=len(posts),
                genres=len(preferences.genres),
                mood_tags=len(preferences.mood_tags),
                has_audio=preferences.audio_features is not None
            )

            return PreferenceRefreshResult(updated=True, sample_size=len(posts))

        except Exception as e:
            logger.warning(
                "Preference refresh failed",
                user_id=user_id,
                error=str(e)
            )
            return PreferenceRefreshResult(updated=False, error=str(e))

    async def get_music_preferences(self, user_id: str) -> Optional[PreferenceSnapshot]:
        """
        Current learned preferences of a user, for inspection.

        Returns:
            PreferenceSnapshot, or None if the user does not exist
        """
        user = await self.user_repository.get_by_id(user_id)
        if user is None:
            return None

        return PreferenceSnapshot(
            music_preferences=normalize_user(user).music_preferences,
            last_preferences_update=user.last_preferences_update,
        )
