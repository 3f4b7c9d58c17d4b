"""
Discovery feed API endpoints.

Design Rationale:
- The ranked feed is the main entry point; the unswiped listing is a
  fallback for clients that rank on their own
- Identity-critical failures (unknown viewer) map to 404, everything else
  degrades to an empty feed inside the service
"""

from fastapi import APIRouter

from songmatch.models.schemas import FeedEntryResponse, FeedResponse, UnswipedPostsResponse
from songmatch.core.dependencies import DiscoveryServiceDep, SwipeServiceDep, WindowDep
from songmatch.core.logging import get_logger, LoggingContext

logger = get_logger(__name__)
router = APIRouter(tags=["Discovery"])


@router.get(
    "/{user_id}/feed",
    response_model=FeedResponse,
    summary="Get discovery feed",
    description="Ranked posts of the current daily window the user has not swiped on yet"
)
async def get_feed(
    user_id: str,
    discovery_service: DiscoveryServiceDep,
    window: WindowDep
) -> FeedResponse:
    """
    Get the ranked discovery feed of a user.

    Args:
        user_id: ID of the viewer

    Returns:
        Feed response with ranked entries and window information

    Raises:
        UserNotFoundError: If the viewer does not exist (mapped to 404)
    """
    with LoggingContext(viewer_id=user_id):
        entries = await discovery_service.assemble_feed(user_id)

    return FeedResponse(
        viewer_id=user_id,
        entries=[FeedEntryResponse(post=entry.post, score=entry.score) for entry in entries],
        window_start=window.current_window_start(),
        resets_in=window.time_until_reset()
    )


@router.get(
    "/{user_id}/unswiped",
    response_model=UnswipedPostsResponse,
    summary="List unswiped posts",
    description="Active posts the user has not swiped on, newest first and unranked"
)
async def get_unswiped(user_id: str, swipe_service: SwipeServiceDep) -> UnswipedPostsResponse:
    post_ids = await swipe_service.get_unswiped_post_ids(user_id)
    return UnswipedPostsResponse(post_ids=post_ids)
