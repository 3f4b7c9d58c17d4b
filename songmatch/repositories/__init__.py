"""
Repository module initialization.

This module exports repository implementations.
Design Rationale:
- Centralized repository exports
- Clean module interface
"""

from songmatch.repositories.base import SQLModelRepository
from songmatch.repositories.user_repository import UserRepository
from songmatch.repositories.post_repository import PostRepository
from songmatch.repositories.swipe_repository import SwipeRepository
from songmatch.repositories.match_repository import MatchRepository


__all__ = [
    "SQLModelRepository",
    "UserRepository",
    "PostRepository",
    "SwipeRepository",
    "MatchRepository",
]
