"""
Domain exceptions raised by the matching core.

The API layer translates these into HTTP responses; services catch the ones
they treat as benign (a duplicate match is not an error for the swiper).
"""

from typing import Optional


class SongMatchError(Exception):
    """Base class for all matching-core errors."""


class UserNotFoundError(SongMatchError):
    """Raised when an identity-critical user lookup finds nothing."""

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class PostNotFoundError(SongMatchError):
    """Raised when a post referenced by a caller does not exist."""

    def __init__(self, post_id: str):
        super().__init__(f"Post {post_id} not found")
        self.post_id = post_id


class MatchAlreadyExistsError(SongMatchError):
    """Raised when a match for the user pair has already been created."""

    def __init__(self, user_a: str, user_b: str, match_id: Optional[str] = None):
        super().__init__(f"Match already exists between {user_a} and {user_b}")
        self.user_a = user_a
        self.user_b = user_b
        self.match_id = match_id
