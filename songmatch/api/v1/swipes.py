"""
Swipe API endpoints.

Design Rationale:
- A swipe is recorded against an existing post whose author is confirmed
- The response says whether the swipe completed a match
- History and stats are read-only views over the swipe ledger
"""

from typing import List

from fastapi import APIRouter, HTTPException, Query, status

from songmatch.core.exceptions import PostNotFoundError
from songmatch.models.schemas import (
    SwipeCreateRequest,
    SwipeResponse,
    SwipeResultResponse,
    SwipeStatsResponse,
)
from songmatch.core.dependencies import PostRepositoryDep, SwipeServiceDep
from songmatch.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Swipes"])


@router.post(
    "/",
    response_model=SwipeResultResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record swipe",
    description="Record an accept or reject on a post; an accept may create a match"
)
async def create_swipe(
    swipe_data: SwipeCreateRequest,
    swipe_service: SwipeServiceDep,
    post_repository: PostRepositoryDep
) -> SwipeResultResponse:
    """
    Record a swipe.

    Args:
        swipe_data: Swipe data

    Returns:
        Whether a match was created and its id

    Raises:
        PostNotFoundError: If the post does not exist (mapped to 404)
        HTTPException: If the post author does not match the post
    """
    post = await post_repository.get_post(swipe_data.post_id)
    if post is None:
        raise PostNotFoundError(swipe_data.post_id)

    if post.user_id != swipe_data.post_author_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Post {swipe_data.post_id} is not authored by {swipe_data.post_author_id}"
        )

    match_id = await swipe_service.record_swipe(
        swipe_data.swiper_id,
        swipe_data.post_id,
        swipe_data.post_author_id,
        swipe_data.direction
    )

    return SwipeResultResponse(matched=match_id is not None, match_id=match_id)


@router.get(
    "/{user_id}/history",
    response_model=List[SwipeResponse],
    summary="Get swipe history",
    description="Most recent swipes of a user"
)
async def get_swipe_history(
    user_id: str,
    swipe_service: SwipeServiceDep,
    limit: int = Query(50, ge=1, le=1000, description="Maximum number of swipes")
) -> List[SwipeResponse]:
    swipes = await swipe_service.get_swipe_history(user_id, limit=limit)
    return [SwipeResponse.model_validate(swipe) for swipe in swipes]


@router.get(
    "/{user_id}/stats",
    response_model=SwipeStatsResponse,
    summary="Get swipe statistics"
)
async def get_swipe_stats(user_id: str, swipe_service: SwipeServiceDep) -> SwipeStatsResponse:
    stats = await swipe_service.get_swipe_stats(user_id)
    return SwipeStatsResponse(
        total_swipes=stats.total_swipes,
        accepts=stats.accepts,
        rejects=stats.rejects,
        accept_ratio=stats.accept_ratio
    )
