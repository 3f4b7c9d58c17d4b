"""
Match API endpoints.

Matches are created by the swipe flow only; this router exposes them.
"""

from typing import List

from fastapi import APIRouter, HTTPException, status

from songmatch.models.domain import MatchRecord
from songmatch.models.schemas import (
    MatchListResponse,
    MatchStatsResponse,
    MatchedUserPostResponse,
)
from songmatch.core.dependencies import MatchServiceDep
from songmatch.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Matches"])


@router.get(
    "/user/{user_id}",
    response_model=MatchListResponse,
    summary="Get user matches",
    description="Active matches of a user, most recently active first"
)
async def get_user_matches(user_id: str, match_service: MatchServiceDep) -> MatchListResponse:
    matches = await match_service.get_user_matches(user_id)
    return MatchListResponse(matches=matches, total_count=len(matches))


@router.get(
    "/user/{user_id}/stats",
    response_model=MatchStatsResponse,
    summary="Get match statistics"
)
async def get_match_stats(user_id: str, match_service: MatchServiceDep) -> MatchStatsResponse:
    stats = await match_service.get_match_stats(user_id)
    return MatchStatsResponse(
        total_matches=stats.total_matches,
        active_matches=stats.active_matches,
        recent_matches=stats.recent_matches
    )


@router.get(
    "/user/{user_id}/posts",
    response_model=List[MatchedUserPostResponse],
    summary="Get matched users' posts",
    description="Active posts of everyone the user is matched with, newest first"
)
async def get_matched_users_posts(
    user_id: str,
    match_service: MatchServiceDep
) -> List[MatchedUserPostResponse]:
    items = await match_service.get_matched_users_posts(user_id)
    return [MatchedUserPostResponse.model_validate(item) for item in items]


@router.get(
    "/{match_id}",
    response_model=MatchRecord,
    summary="Get match",
    responses={404: {"description": "Match not found"}}
)
async def get_match(match_id: str, match_service: MatchServiceDep) -> MatchRecord:
    """
    Get a match by id.

    Raises:
        HTTPException: If the match does not exist
    """
    match = await match_service.get_match(match_id)
    if match is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Match {match_id} not found"
        )
    return match
