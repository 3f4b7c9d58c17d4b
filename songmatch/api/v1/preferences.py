"""
Music preference API endpoints.

Preferences are learned from accepted posts; clients can trigger a refresh
and inspect the result.
"""

from fastapi import APIRouter

from songmatch.core.exceptions import UserNotFoundError
from songmatch.models.schemas import MusicPreferencesResponse, PreferenceRefreshResponse
from songmatch.core.dependencies import PreferenceServiceDep
from songmatch.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Preferences"])


@router.get(
    "/{user_id}",
    response_model=MusicPreferencesResponse,
    summary="Get learned music preferences"
)
async def get_music_preferences(
    user_id: str,
    preference_service: PreferenceServiceDep
) -> MusicPreferencesResponse:
    snapshot = await preference_service.get_music_preferences(user_id)
    if snapshot is None:
        raise UserNotFoundError(user_id)

    return MusicPreferencesResponse(
        user_id=user_id,
        has_preferences=snapshot.has_preferences,
        music_preferences=snapshot.music_preferences,
        last_preferences_update=snapshot.last_preferences_update
    )


@router.post(
    "/{user_id}/refresh",
    response_model=PreferenceRefreshResponse,
    summary="Refresh music preferences",
    description="Recompute preferences from the user's most recent accepts"
)
async def refresh_music_preferences(
    user_id: str,
    preference_service: PreferenceServiceDep
) -> PreferenceRefreshResponse:
    result = await preference_service.refresh_preferences(user_id)

    if not result.ok:
        logger.warning("Manual preference refresh failed", user_id=user_id, error=result.error)

    return PreferenceRefreshResponse.model_validate(result)
