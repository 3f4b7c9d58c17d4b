"""
API request/response schemas using Pydantic.

This module defines the API contract models, separate from database models.
Design patterns demonstrated:
- Separate API models from stored rows for flexibility
- Normalized domain models embedded where their shape is already the contract
- Request validation with Pydantic
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict

from pydantic import BaseModel, Field, validator

from songmatch.models.database import SwipeDirection
from songmatch.models.domain import MatchRecord, MatchedUser, MusicPreferences, PostRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SwipeCreateRequest(BaseModel):
    """Request schema for recording a swipe."""
    swiper_id: str = Field(..., min_length=1, max_length=128, description="User who swiped")
    post_id: str = Field(..., min_length=1, max_length=128, description="Post that was swiped")
    post_author_id: str = Field(..., min_length=1, max_length=128, description="Author of the post")
    direction: SwipeDirection = Field(..., description="accept or reject")

    @validator("post_author_id")
    def validate_not_self(cls, v: str, values: dict) -> str:
        if v == values.get("swiper_id"):
            raise ValueError("Cannot swipe on your own post")
        return v


class SwipeResultResponse(BaseModel):
    """Response schema for a recorded swipe."""
    matched: bool = Field(..., description="Whether the swipe created a new match")
    match_id: Optional[str] = Field(None, description="Id of the new match, if any")


class SwipeResponse(BaseModel):
    """Response schema for a stored swipe."""
    id: int = Field(..., description="Swipe unique identifier")
    swiper_id: str
    post_id: str
    post_user_id: str
    direction: SwipeDirection
    timestamp: datetime

    class Config:
        from_attributes = True


class SwipeStatsResponse(BaseModel):
    total_swipes: int
    accepts: int
    rejects: int
    accept_ratio: float = Field(..., description="Share of swipes that were accepts (0-1)")


class FeedEntryResponse(BaseModel):
    post: PostRecord
    score: float = Field(..., ge=0, le=1, description="Compatibility score (0-1)")


class FeedResponse(BaseModel):
    """Response schema for a discovery feed."""
    viewer_id: str
    entries: List[FeedEntryResponse] = Field(..., description="Ranked posts, best first")
    window_start: datetime = Field(..., description="Start of the current daily window")
    resets_in: str = Field(..., description="Time until the next window, e.g. 3h 12m")


class UnswipedPostsResponse(BaseModel):
    post_ids: List[str]


class ActivePostsResponse(BaseModel):
    posts: List[PostRecord]
    window_start: datetime


class PostedTodayResponse(BaseModel):
    user_id: str
    has_posted_today: bool
    resets_in: str


class ArchivedPostsResponse(BaseModel):
    user_id: str
    months: Dict[str, List[PostRecord]] = Field(..., description="Posts keyed by YYYY-MM, newest month first")


class MonthPostsResponse(BaseModel):
    user_id: str
    year: int
    month: int
    posts: List[PostRecord]


class CleanupResponse(BaseModel):
    posts_deleted: int
    swipes_deleted: int


class MatchListResponse(BaseModel):
    matches: List[MatchRecord]
    total_count: int


class MatchStatsResponse(BaseModel):
    total_matches: int
    active_matches: int
    recent_matches: int = Field(..., description="Matches created in the last 7 days")


class MatchedUserPostResponse(BaseModel):
    post: PostRecord
    author: MatchedUser
    match_id: str
    matched_at: datetime

    class Config:
        from_attributes = True


class PreferenceRefreshResponse(BaseModel):
    updated: bool
    sample_size: int
    error: Optional[str] = None

    class Config:
        from_attributes = True


class MusicPreferencesResponse(BaseModel):
    user_id: str
    has_preferences: bool
    music_preferences: Optional[MusicPreferences] = None
    last_preferences_update: Optional[datetime] = None


class HealthCheckResponse(BaseModel):
    """Response schema for health check endpoint."""
    status: str = Field(..., description="Overall system status")
    timestamp: datetime = Field(..., description="Health check timestamp")
    version: str = Field(..., description="Application version")
    checks: Dict[str, str] = Field(..., description="Individual component health statuses")


class ErrorResponse(BaseModel):
    """Standard error response schema."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    request_id: Optional[str] = Field(None, description="Request ID for debugging")
    timestamp: datetime = Field(default_factory=_utcnow, description="Error timestamp")
