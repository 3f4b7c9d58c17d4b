"""
Database models using SQLModel ORM.

This module defines the stored shape of users, posts, swipes and matches.
- Separate stored rows from the normalized domain models the services use
- UTC timestamps everywhere, whatever the backing database does with zones
- Match rows keyed by the sorted user pair so a pair can only be inserted once
"""

from datetime import datetime, timezone
from typing import Optional, List
from enum import Enum
from uuid import uuid4

from sqlalchemy import Column, DateTime, JSON, Text, String, Index
from sqlalchemy.types import TypeDecorator
from sqlmodel import Field, SQLModel


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware datetime column normalized to UTC.

    SQLite keeps no offset, so values are stored as naive UTC there and
    re-tagged as UTC on the way out.
    """
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid4().hex


class SwipeDirection(str, Enum):
    """Directional judgement a user makes on a post."""
    ACCEPT = "accept"
    REJECT = "reject"


def _escape_id(user_id: str) -> str:
    return user_id.replace("\\", "\\\\").replace(":", "\\:")


def match_id_for(user_a: str, user_b: str) -> str:
    """
    Deterministic match identity for an unordered user pair.

    Separators inside the ids are escaped, so distinct pairs never share a
    key: ``("a:b", "c")`` gives ``a\\:b:c`` and ``("a", "b:c")`` gives
    ``a:b\\:c``.
    """
    first, second = sorted((user_a, user_b))
    return f"{_escape_id(first)}:{_escape_id(second)}"


class User(SQLModel, table=True):
    """
    User document.

    Questionnaire, learned preferences and engagement history are stored as
    JSON blobs and validated into domain models when read.
    """
    __tablename__ = "users"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=128)
    display_name: str = Field(default="User", max_length=100)
    photo_url: Optional[str] = Field(default=None, max_length=500)
    bio: Optional[str] = Field(default=None, sa_column=Column(Text))

    questionnaire: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    music_preferences: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    engagement_history: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    friends: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(UTCDateTime(), nullable=False)
    )
    last_preferences_update: Optional[datetime] = Field(
        default=None,
        sa_column=Column(UTCDateTime(), nullable=True)
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, display_name={self.display_name})>"


class Post(SQLModel, table=True):
    """
    Daily song post.

    Older clients wrote song metadata as flat columns (song_title,
    song_artist, ...) instead of the nested ``song`` document. Both shapes are
    kept here and merged by ``songmatch.models.normalization``.
    """
    __tablename__ = "posts"

    id: str = Field(default_factory=_new_id, primary_key=True, max_length=128)
    user_id: str = Field(max_length=128)

    song: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    # Legacy flat song fields
    song_title: Optional[str] = Field(default=None, max_length=300)
    song_artist: Optional[str] = Field(default=None, max_length=300)
    song_album_art: Optional[str] = Field(default=None, max_length=500)
    spotify_id: Optional[str] = Field(default=None, max_length=100)
    preview_url: Optional[str] = Field(default=None, max_length=500)
    audio_features: Optional[dict] = Field(default=None, sa_column=Column(JSON))

    mood: str = Field(default="", max_length=50)
    mood_tags: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))
    caption: Optional[str] = Field(default=None, sa_column=Column(Text))
    media_url: Optional[str] = Field(default=None, max_length=500)
    media_urls: Optional[List[str]] = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(UTCDateTime(), nullable=False)
    )

    __table_args__ = (
        Index("idx_post_user_created_at", "user_id", "created_at"),
        Index("idx_post_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, user_id={self.user_id}, mood={self.mood})>"


class Swipe(SQLModel, table=True):
    """
    Append-only swipe ledger entry.

    (swiper_id, post_id) is not unique: repeated swipes are kept and the
    most recent one is the effective judgement.
    """
    __tablename__ = "swipes"

    id: Optional[int] = Field(default=None, primary_key=True)
    swiper_id: str = Field(max_length=128)
    post_id: str = Field(max_length=128)
    post_user_id: str = Field(max_length=128)
    direction: str = Field(sa_column=Column(String(10), nullable=False))
    timestamp: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(UTCDateTime(), nullable=False)
    )

    __table_args__ = (
        Index("idx_swipe_swiper_post", "swiper_id", "post_id"),
        Index("idx_swipe_swiper_direction", "swiper_id", "direction"),
        Index("idx_swipe_post", "post_id"),
    )

    def __repr__(self) -> str:
        return f"<Swipe(swiper_id={self.swiper_id}, post_id={self.post_id}, direction={self.direction})>"


class Match(SQLModel, table=True):
    """
    Mutual-acceptance relationship between two users.

    ``id`` is ``match_id_for(user_a, user_b)``, so a second insert for the
    same pair fails on the primary key. ``users`` holds the display metadata
    captured at creation time.
    """
    __tablename__ = "matches"

    id: str = Field(primary_key=True, max_length=520)
    user_a: str = Field(max_length=128)
    user_b: str = Field(max_length=128)
    user_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    users: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    is_active: bool = Field(default=True)

    created_at: datetime = Field(
        default_factory=_utcnow,
        sa_column=Column(UTCDateTime(), nullable=False)
    )
    last_message: Optional[datetime] = Field(
        default=None,
        sa_column=Column(UTCDateTime(), nullable=True)
    )

    __table_args__ = (
        Index("idx_match_user_a", "user_a"),
        Index("idx_match_user_b", "user_b"),
        Index("idx_match_pair", "user_a", "user_b", unique=True),
    )

    def __repr__(self) -> str:
        return f"<Match(id={self.id}, active={self.is_active})>"
