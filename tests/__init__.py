"""
Test module initialization.

This module exports test data builders and assertion helpers shared by the
unit and integration suites.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from songmatch.models.database import Post, User
from songmatch.models.domain import (
    AudioFeatures,
    EngagementHistory,
    MusicPreferences,
    PostRecord,
    Questionnaire,
    Song,
    UserProfile,
)

# 13:00 in Los Angeles (PDT), four hours after the 09:00 rollover
NOW = datetime(2026, 3, 10, 20, 0, tzinfo=timezone.utc)
WINDOW_START = datetime(2026, 3, 10, 16, 0, tzinfo=timezone.utc)


def make_profile(
    uid: str,
    questionnaire: Optional[Dict[str, str]] = None,
    music_preferences: Optional[MusicPreferences] = None,
    engagement_history: Optional[EngagementHistory] = None,
    friends: Optional[List[str]] = None,
    display_name: Optional[str] = None
) -> UserProfile:
    """Build a normalized user profile."""
    return UserProfile(
        uid=uid,
        display_name=display_name or f"User {uid}",
        questionnaire=Questionnaire(**(questionnaire or {})),
        music_preferences=music_preferences,
        engagement_history=engagement_history,
        friends=friends or [],
    )


def make_post(
    post_id: str,
    user_id: str,
    created_at: datetime = NOW - timedelta(hours=1),
    mood: str = "chill",
    mood_tags: Optional[List[str]] = None,
    audio_features: Optional[Dict[str, float]] = None,
    genres: Optional[List[str]] = None
) -> PostRecord:
    """Build a normalized post."""
    return PostRecord(
        id=post_id,
        user_id=user_id,
        song=Song(
            title=f"Song {post_id}",
            artist="Artist",
            audio_features=AudioFeatures(**audio_features) if audio_features else None,
            genres=genres or [],
        ),
        mood=mood,
        mood_tags=mood_tags if mood_tags is not None else [mood],
        created_at=created_at,
    )


def make_user_row(user_id: str, **fields: Any) -> User:
    """Build a stored user row."""
    fields.setdefault("display_name", f"User {user_id}")
    return User(id=user_id, **fields)


def make_post_row(
    post_id: str,
    user_id: str,
    created_at: datetime = NOW - timedelta(hours=1),
    **fields: Any
) -> Post:
    """Build a stored post row in the nested-song shape unless fields say otherwise."""
    fields.setdefault("song", {"title": f"Song {post_id}", "artist": "Artist"})
    fields.setdefault("mood", "chill")
    return Post(id=post_id, user_id=user_id, created_at=created_at, **fields)


def assert_valid_feed_response(response_data: Dict[str, Any]) -> None:
    """Validate discovery feed response data."""
    required_fields = ["viewer_id", "entries", "window_start", "resets_in"]
    for field in required_fields:
        assert field in response_data, f"Missing required field: {field}"

    assert isinstance(response_data["entries"], list)

    scores = [entry["score"] for entry in response_data["entries"]]
    assert all(0 <= score <= 1 for score in scores)
    assert scores == sorted(scores, reverse=True)

    for entry in response_data["entries"]:
        assert "id" in entry["post"]
        assert "user_id" in entry["post"]
