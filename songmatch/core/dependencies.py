"""
Dependency injection configuration for FastAPI.

This module defines dependency functions for FastAPI using the dependency injection
pattern. This enables easy testing and loose coupling between components.

Design Rationale:
- Dependency injection for testability
- One set of repositories per request, sharing the request's session
- Configuration-based service creation
- Process-wide objects (window, scorer, notifier, token cache) built once
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from songmatch.core.clock import ResetWindow
from songmatch.core.config import get_settings
from songmatch.core.database import get_session
from songmatch.repositories.match_repository import MatchRepository
from songmatch.repositories.post_repository import PostRepository
from songmatch.repositories.swipe_repository import SwipeRepository
from songmatch.repositories.user_repository import UserRepository
from songmatch.services.compatibility import CompatibilityScorer, ScoringWeights
from songmatch.services.discovery_service import DiscoveryService
from songmatch.services.match_service import MatchService
from songmatch.services.notifications import LoggingMatchNotifier, MatchNotifier
from songmatch.services.post_lifecycle import PostLifecycleService
from songmatch.services.preference_service import PreferenceService
from songmatch.services.swipe_service import SwipeService


# Type aliases for dependency injection
SessionDep = Annotated[AsyncSession, Depends(get_session)]


@lru_cache()
def get_reset_window() -> ResetWindow:
    """Daily window built from settings, shared by the whole process."""
    return ResetWindow.from_settings(get_settings())


@lru_cache()
def get_scorer() -> CompatibilityScorer:
    return CompatibilityScorer(ScoringWeights.from_settings(get_settings()))


@lru_cache()
def get_match_notifier() -> MatchNotifier:
    return LoggingMatchNotifier()


WindowDep = Annotated[ResetWindow, Depends(get_reset_window)]
ScorerDep = Annotated[CompatibilityScorer, Depends(get_scorer)]
NotifierDep = Annotated[MatchNotifier, Depends(get_match_notifier)]


async def get_user_repository(session: SessionDep) -> UserRepository:
    """
    Dependency function to get UserRepository instance.

    Args:
        session: Database session dependency

    Returns:
        UserRepository instance
    """
    return UserRepository(session)


async def get_post_repository(session: SessionDep) -> PostRepository:
    return PostRepository(session)


async def get_swipe_repository(session: SessionDep) -> SwipeRepository:
    return SwipeRepository(session)


async def get_match_repository(session: SessionDep) -> MatchRepository:
    return MatchRepository(session)


# Type aliases for repository dependencies
UserRepositoryDep = Annotated[UserRepository, Depends(get_user_repository)]
PostRepositoryDep = Annotated[PostRepository, Depends(get_post_repository)]
SwipeRepositoryDep = Annotated[SwipeRepository, Depends(get_swipe_repository)]
MatchRepositoryDep = Annotated[MatchRepository, Depends(get_match_repository)]


async def get_preference_service(
    user_repository: UserRepositoryDep,
    post_repository: PostRepositoryDep,
    swipe_repository: SwipeRepositoryDep
) -> PreferenceService:
    """
    Dependency function to get PreferenceService instance.

    Args:
        user_repository: UserRepository dependency
        post_repository: PostRepository dependency
        swipe_repository: SwipeRepository dependency

    Returns:
        PreferenceService instance
    """
    return PreferenceService(
        user_repository=user_repository,
        post_repository=post_repository,
        swipe_repository=swipe_repository,
        sample_size=get_settings().PREFERENCE_SAMPLE_SIZE
    )


async def get_match_service(
    user_repository: UserRepositoryDep,
    post_repository: PostRepositoryDep,
    swipe_repository: SwipeRepositoryDep,
    match_repository: MatchRepositoryDep,
    notifier: NotifierDep,
    window: WindowDep
) -> MatchService:
    return MatchService(
        user_repository=user_repository,
        post_repository=post_repository,
        swipe_repository=swipe_repository,
        match_repository=match_repository,
        notifier=notifier,
        window=window
    )


async def get_swipe_service(
    swipe_repository: SwipeRepositoryDep,
    match_service: Annotated[MatchService, Depends(get_match_service)],
    user_repository: UserRepositoryDep,
    post_repository: PostRepositoryDep,
    match_repository: MatchRepositoryDep,
    window: WindowDep
) -> SwipeService:
    return SwipeService(
        swipe_repository=swipe_repository,
        match_service=match_service,
        user_repository=user_repository,
        post_repository=post_repository,
        match_repository=match_repository,
        window=window
    )


async def get_discovery_service(
    user_repository: UserRepositoryDep,
    post_repository: PostRepositoryDep,
    swipe_repository: SwipeRepositoryDep,
    match_repository: MatchRepositoryDep,
    preference_service: Annotated[PreferenceService, Depends(get_preference_service)],
    scorer: ScorerDep,
    window: WindowDep
) -> DiscoveryService:
    """
    Dependency function to get DiscoveryService instance.

    Returns:
        DiscoveryService instance configured from settings
    """
    settings = get_settings()
    return DiscoveryService(
        user_repository=user_repository,
        post_repository=post_repository,
        swipe_repository=swipe_repository,
        match_repository=match_repository,
        preference_service=preference_service,
        scorer=scorer,
        window=window,
        result_cap=settings.FEED_RESULT_CAP,
        fetch_cap=settings.FEED_FETCH_CAP
    )


async def get_post_lifecycle_service(
    post_repository: PostRepositoryDep,
    swipe_repository: SwipeRepositoryDep,
    window: WindowDep
) -> PostLifecycleService:
    return PostLifecycleService(post_repository, swipe_repository, window=window)


# Type aliases for service dependencies
PreferenceServiceDep = Annotated[PreferenceService, Depends(get_preference_service)]
MatchServiceDep = Annotated[MatchService, Depends(get_match_service)]
SwipeServiceDep = Annotated[SwipeService, Depends(get_swipe_service)]
DiscoveryServiceDep = Annotated[DiscoveryService, Depends(get_discovery_service)]
PostLifecycleServiceDep = Annotated[PostLifecycleService, Depends(get_post_lifecycle_service)]
