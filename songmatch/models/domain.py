"""
Normalized domain models.

Scoring and feed assembly only ever see these shapes; stored rows are
converted at the repository boundary.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

AUDIO_FEATURE_NAMES = ("valence", "energy", "danceability", "acousticness", "tempo")


class AudioFeatures(BaseModel):
    """Audio descriptors of a track. Every field may be missing."""
    valence: Optional[float] = None
    energy: Optional[float] = None
    danceability: Optional[float] = None
    acousticness: Optional[float] = None
    tempo: Optional[float] = None

    def present(self) -> Dict[str, float]:
        """Features that carry a value."""
        return {
            name: value
            for name, value in self.model_dump().items()
            if value is not None
        }

    def is_empty(self) -> bool:
        return not self.present()


class Song(BaseModel):
    title: str = ""
    artist: str = ""
    album: Optional[str] = None
    cover_art_url: Optional[str] = None
    external_id: Optional[str] = None
    preview_url: Optional[str] = None
    audio_features: Optional[AudioFeatures] = None
    genres: List[str] = Field(default_factory=list)


class Questionnaire(BaseModel):
    """Onboarding answers. Blank answers are treated as absent."""
    weekend_soundtrack: Optional[str] = None
    mood_genre: Optional[str] = None
    discovery_frequency: Optional[str] = None
    favorite_song_memory: Optional[str] = None
    preferred_mood_tag: Optional[str] = None


class MusicPreferences(BaseModel):
    """Learned preferences, always replaced as a whole."""
    genres: List[str] = Field(default_factory=list)
    audio_features: Optional[AudioFeatures] = None
    mood_tags: List[str] = Field(default_factory=list)


class EngagementHistory(BaseModel):
    liked_posts: List[str] = Field(default_factory=list)
    matched_users: List[str] = Field(default_factory=list)
    friend_users: List[str] = Field(default_factory=list)
    posted_moods: List[str] = Field(default_factory=list)


class UserProfile(BaseModel):
    uid: str
    display_name: str = "User"
    photo_url: Optional[str] = None
    bio: Optional[str] = None
    questionnaire: Questionnaire = Field(default_factory=Questionnaire)
    music_preferences: Optional[MusicPreferences] = None
    engagement_history: Optional[EngagementHistory] = None
    friends: List[str] = Field(default_factory=list)


class PostRecord(BaseModel):
    """A post in its single normalized shape."""
    id: str
    user_id: str
    song: Song
    mood: str = ""
    mood_tags: List[str] = Field(default_factory=list)
    caption: Optional[str] = None
    media_urls: List[str] = Field(default_factory=list)
    created_at: datetime


class MatchedUser(BaseModel):
    """Display metadata captured when a match is created."""
    display_name: str = "User"
    photo_url: Optional[str] = None
    bio: Optional[str] = None


class MatchRecord(BaseModel):
    id: str
    user_ids: List[str]
    users: Dict[str, MatchedUser] = Field(default_factory=dict)
    created_at: datetime
    last_message: Optional[datetime] = None
    is_active: bool = True

    def other_user(self, user_id: str) -> Optional[str]:
        return next((uid for uid in self.user_ids if uid != user_id), None)
