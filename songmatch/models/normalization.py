"""
Conversion of stored rows into normalized domain models.

Posts were written in several shapes over time: a nested ``song`` document
(sometimes with camelCase keys), flat ``song_title``/``song_artist`` columns,
audio features at the top level instead of under the song. This is the only
place that knows about those shapes.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from songmatch.core.clock import ensure_aware
from songmatch.core.logging import get_logger
from songmatch.models.database import Match, Post, User
from songmatch.models.domain import (
    AUDIO_FEATURE_NAMES,
    AudioFeatures,
    EngagementHistory,
    MatchRecord,
    MatchedUser,
    MusicPreferences,
    PostRecord,
    Questionnaire,
    Song,
    UserProfile,
)

logger = get_logger(__name__)

_SONG_KEY_ALIASES = {
    "coverArtUrl": "cover_art_url",
    "spotifyId": "external_id",
    "spotify_id": "external_id",
    "previewUrl": "preview_url",
    "audioFeatures": "audio_features",
}

_QUESTIONNAIRE_KEY_ALIASES = {
    "weekendSoundtrack": "weekend_soundtrack",
    "moodGenre": "mood_genre",
    "discoveryFrequency": "discovery_frequency",
    "favoriteSongMemory": "favorite_song_memory",
    "preferredMoodTag": "preferred_mood_tag",
}

_PREFERENCE_KEY_ALIASES = {
    "audioFeatures": "audio_features",
    "moodTags": "mood_tags",
}

_ENGAGEMENT_KEY_ALIASES = {
    "likedPosts": "liked_posts",
    "matchedUsers": "matched_users",
    "friendUsers": "friend_users",
    "postedMoods": "posted_moods",
}


def _rename_keys(data: Dict[str, Any], aliases: Dict[str, str]) -> Dict[str, Any]:
    renamed = {}
    for key, value in data.items():
        target = aliases.get(key, key)
        # Canonical keys win over aliases
        if target in renamed and key != target:
            continue
        renamed[target] = value
    return renamed


def normalize_audio_features(raw: Optional[Dict[str, Any]]) -> Optional[AudioFeatures]:
    """Keep numeric values only; an object with nothing usable becomes None."""
    if not isinstance(raw, dict):
        return None

    values = {}
    for name in AUDIO_FEATURE_NAMES:
        value = raw.get(name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        if value != value:  # NaN
            continue
        values[name] = float(value)

    if not values:
        return None
    return AudioFeatures(**values)


def _clean_tags(tags: Optional[List[Any]]) -> List[str]:
    if not tags:
        return []
    seen = []
    for tag in tags:
        if isinstance(tag, str) and tag.strip() and tag not in seen:
            seen.append(tag)
    return seen


def normalize_song(post: Post) -> Song:
    nested = _rename_keys(post.song or {}, _SONG_KEY_ALIASES)

    audio = normalize_audio_features(nested.get("audio_features"))
    if audio is None:
        audio = normalize_audio_features(post.audio_features)

    return Song(
        title=nested.get("title") or post.song_title or "",
        artist=nested.get("artist") or post.song_artist or "",
        album=nested.get("album") or None,
        cover_art_url=nested.get("cover_art_url") or post.song_album_art or None,
        external_id=nested.get("external_id") or post.spotify_id or None,
        preview_url=nested.get("preview_url") or post.preview_url or None,
        audio_features=audio,
        genres=_clean_tags(nested.get("genres")),
    )


def normalize_post(post: Post) -> PostRecord:
    """
    Build the single PostRecord shape from any stored post row.

    ``mood_tags`` always includes ``mood`` when a mood is set.
    """
    mood = post.mood or ""
    mood_tags = _clean_tags(post.mood_tags)
    if mood and mood not in mood_tags:
        mood_tags.insert(0, mood)

    media_urls = list(post.media_urls or [])
    if post.media_url and post.media_url not in media_urls:
        media_urls.insert(0, post.media_url)

    return PostRecord(
        id=post.id,
        user_id=post.user_id,
        song=normalize_song(post),
        mood=mood,
        mood_tags=mood_tags,
        caption=post.caption,
        media_urls=media_urls,
        created_at=ensure_aware(post.created_at),
    )


def _blank_to_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: (value.strip() if isinstance(value, str) and value.strip() else None)
        for key, value in data.items()
    }


def normalize_user(user: User) -> UserProfile:
    """Validate the JSON blobs of a user row into a UserProfile."""
    questionnaire = Questionnaire()
    if user.questionnaire:
        fields = _rename_keys(user.questionnaire, _QUESTIONNAIRE_KEY_ALIASES)
        fields = {k: v for k, v in fields.items() if k in Questionnaire.model_fields}
        questionnaire = Questionnaire(**_blank_to_none(fields))

    preferences = None
    if user.music_preferences:
        raw = _rename_keys(user.music_preferences, _PREFERENCE_KEY_ALIASES)
        preferences = MusicPreferences(
            genres=_clean_tags(raw.get("genres")),
            audio_features=normalize_audio_features(raw.get("audio_features")),
            mood_tags=_clean_tags(raw.get("mood_tags")),
        )

    engagement = None
    if user.engagement_history:
        raw = _rename_keys(user.engagement_history, _ENGAGEMENT_KEY_ALIASES)
        try:
            engagement = EngagementHistory(
                **{k: v for k, v in raw.items() if k in EngagementHistory.model_fields}
            )
        except ValidationError as e:
            logger.warning("Ignoring malformed engagement history", user_id=user.id, error=str(e))

    return UserProfile(
        uid=user.id,
        display_name=user.display_name or "User",
        photo_url=user.photo_url,
        bio=user.bio,
        questionnaire=questionnaire,
        music_preferences=preferences,
        engagement_history=engagement,
        friends=list(user.friends or []),
    )


def normalize_match(match: Match) -> MatchRecord:
    users = {
        uid: MatchedUser(**(meta or {}))
        for uid, meta in (match.users or {}).items()
    }
    created_at = ensure_aware(match.created_at)
    return MatchRecord(
        id=match.id,
        user_ids=list(match.user_ids or [match.user_a, match.user_b]),
        users=users,
        created_at=created_at,
        last_message=ensure_aware(match.last_message) if match.last_message else created_at,
        is_active=match.is_active is not False,
    )
