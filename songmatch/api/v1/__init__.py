"""
API v1 module initialization.

This module exports API v1 routers and endpoints.
"""

from fastapi import APIRouter
from songmatch.api.v1 import discovery, swipes, matches, preferences, posts, health

# Create main API router (no prefix here - will be added in main.py)
api_router = APIRouter()

# Include sub-routers
api_router.include_router(discovery.router, prefix="/discovery", tags=["discovery"])
api_router.include_router(swipes.router, prefix="/swipes", tags=["swipes"])
api_router.include_router(matches.router, prefix="/matches", tags=["matches"])
api_router.include_router(preferences.router, prefix="/preferences", tags=["preferences"])
api_router.include_router(posts.router, prefix="/posts", tags=["posts"])
api_router.include_router(health.router, prefix="/health", tags=["health"])
