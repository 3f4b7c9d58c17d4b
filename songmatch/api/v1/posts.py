"""
Post lifecycle API endpoints.

Posts themselves are created elsewhere; this router answers window questions,
lists archived posts by month and runs the expiry cleanup.
"""

from fastapi import APIRouter, Path

from songmatch.models.schemas import (
    ActivePostsResponse,
    ArchivedPostsResponse,
    CleanupResponse,
    MonthPostsResponse,
    PostedTodayResponse,
)
from songmatch.core.dependencies import PostLifecycleServiceDep, WindowDep
from songmatch.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Posts"])


@router.get(
    "/active",
    response_model=ActivePostsResponse,
    summary="List active posts",
    description="Every post of the current daily window, newest first"
)
async def get_active_posts(
    lifecycle_service: PostLifecycleServiceDep,
    window: WindowDep
) -> ActivePostsResponse:
    posts = await lifecycle_service.get_active_posts()
    return ActivePostsResponse(posts=posts, window_start=window.current_window_start())


@router.get(
    "/{user_id}/posted-today",
    response_model=PostedTodayResponse,
    summary="Check daily post",
    description="Whether the user already posted in the current window"
)
async def has_posted_today(
    user_id: str,
    lifecycle_service: PostLifecycleServiceDep,
    window: WindowDep
) -> PostedTodayResponse:
    posted = await lifecycle_service.has_posted_today(user_id)
    return PostedTodayResponse(
        user_id=user_id,
        has_posted_today=posted,
        resets_in=window.time_until_reset()
    )


@router.get(
    "/{user_id}/archive",
    response_model=ArchivedPostsResponse,
    summary="Get archived posts",
    description="Posts from before the current month, grouped by month"
)
async def get_archived_posts(
    user_id: str,
    lifecycle_service: PostLifecycleServiceDep
) -> ArchivedPostsResponse:
    months = await lifecycle_service.get_archived_posts(user_id)
    return ArchivedPostsResponse(user_id=user_id, months=months)


@router.get(
    "/{user_id}/months/{year}/{month}",
    response_model=MonthPostsResponse,
    summary="Get posts of a month"
)
async def get_posts_by_month(
    user_id: str,
    lifecycle_service: PostLifecycleServiceDep,
    year: int = Path(..., ge=2000, le=9998),
    month: int = Path(..., ge=1, le=12)
) -> MonthPostsResponse:
    posts = await lifecycle_service.get_posts_by_month(user_id, year, month)
    return MonthPostsResponse(user_id=user_id, year=year, month=month, posts=posts)


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    summary="Clean up expired posts",
    description="Delete posts of past windows and the swipes that reference them"
)
async def cleanup_expired_posts(lifecycle_service: PostLifecycleServiceDep) -> CleanupResponse:
    result = await lifecycle_service.cleanup_expired_posts()
    return CleanupResponse(
        posts_deleted=result.posts_deleted,
        swipes_deleted=result.swipes_deleted
    )
