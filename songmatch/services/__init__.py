"""
Service module initialization.

This module exports service implementations.
Design Rationale:
- Centralized service exports
- Clean module interface
- Consistent with repositories pattern
- Public API documentation via __all__

Note: Service construction/dependency injection is handled in
songmatch/core/dependencies.py, not here. This module only provides
convenient imports.
"""

from songmatch.services.compatibility import (
    CompatibilityScorer,
    ScoringWeights,
    ScoreBreakdown
)
from songmatch.services.notifications import (
    MatchNotifier,
    LoggingMatchNotifier,
    MatchCreatedEvent
)
from songmatch.services.preference_service import (
    PreferenceService,
    PreferenceRefreshResult
)
from songmatch.services.match_service import MatchService, MatchStats, MatchedUserPost
from songmatch.services.swipe_service import SwipeService, SwipeStats
from songmatch.services.discovery_service import DiscoveryService, FeedEntry
from songmatch.services.post_lifecycle import PostLifecycleService, CleanupResult

__all__ = [
    # Services
    "CompatibilityScorer",
    "PreferenceService",
    "MatchService",
    "SwipeService",
    "DiscoveryService",
    "PostLifecycleService",

    # Notifications
    "MatchNotifier",
    "LoggingMatchNotifier",
    "MatchCreatedEvent",

    # Data classes
    "ScoringWeights",
    "ScoreBreakdown",
    "PreferenceRefreshResult",
    "MatchStats",
    "MatchedUserPost",
    "SwipeStats",
    "FeedEntry",
    "CleanupResult",
]
