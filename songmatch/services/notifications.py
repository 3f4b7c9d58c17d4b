"""
Match notifications.

Delivery (push, email, chat bootstrap) lives outside this package; the match
engine only hands a MatchCreatedEvent to whatever MatchNotifier it was given.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List

from songmatch.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class MatchCreatedEvent:
    match_id: str
    user_ids: List[str]
    created_at: datetime


class MatchNotifier(ABC):
    """Receives an event for every newly created match."""

    @abstractmethod
    async def match_created(self, event: MatchCreatedEvent) -> None:
        pass


class LoggingMatchNotifier(MatchNotifier):
    """Default notifier: writes the event to the structured log."""

    async def match_created(self, event: MatchCreatedEvent) -> None:
        logger.info(
            "Match created",
            match_id=event.match_id,
            user_ids=event.user_ids,
            created_at=event.created_at.isoformat()
        )
