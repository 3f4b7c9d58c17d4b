"""
Integration tests for the HTTP API.

Requests go through the full application with the test database swapped in.
Posts are created just after the real current window start, so they are
active whenever the suite runs.
"""

from datetime import datetime, timedelta, timezone

import pytest
from httpx import AsyncClient

from songmatch.core.dependencies import get_reset_window
from tests import assert_valid_feed_response, make_post_row, make_user_row

API = "/api/v1"


@pytest.fixture
async def seeded(db_session):
    created_at = get_reset_window().current_window_start() + timedelta(seconds=1)
    db_session.add_all([
        make_user_row("alice"),
        make_user_row("bob"),
        make_post_row("alice-post", "alice", created_at=created_at, mood="happy"),
        make_post_row(
            "bob-post", "bob",
            created_at=created_at,
            mood="chill",
            song={"title": "Slow", "artist": "B", "audioFeatures": {"energy": 0.2}}
        ),
    ])
    await db_session.commit()


async def _swipe(client: AsyncClient, swiper_id: str, post_id: str, author_id: str, direction: str = "accept"):
    return await client.post(
        f"{API}/swipes/",
        json={
            "swiper_id": swiper_id,
            "post_id": post_id,
            "post_author_id": author_id,
            "direction": direction
        }
    )


class TestDiscoveryAPI:

    async def test_feed(self, seeded, api_client):
        response = await api_client.get(f"{API}/discovery/alice/feed")

        assert response.status_code == 200
        data = response.json()
        assert_valid_feed_response(data)
        assert [entry["post"]["id"] for entry in data["entries"]] == ["bob-post"]

    async def test_feed_unknown_viewer(self, seeded, api_client):
        response = await api_client.get(f"{API}/discovery/ghost/feed")

        assert response.status_code == 404
        assert "ghost" in response.json()["error"]

    async def test_unswiped(self, seeded, api_client):
        await _swipe(api_client, "alice", "bob-post", "bob", "reject")

        response = await api_client.get(f"{API}/discovery/alice/unswiped")

        assert response.status_code == 200
        assert response.json() == {"post_ids": []}


class TestSwipeAPI:

    async def test_mutual_accept_creates_match(self, seeded, api_client):
        first = await _swipe(api_client, "alice", "bob-post", "bob")
        assert first.status_code == 201
        assert first.json() == {"matched": False, "match_id": None}

        second = await _swipe(api_client, "bob", "alice-post", "alice")
        assert second.status_code == 201
        assert second.json() == {"matched": True, "match_id": "alice:bob"}

        matches = await api_client.get(f"{API}/matches/user/alice")
        assert matches.status_code == 200
        assert matches.json()["total_count"] == 1

        match = await api_client.get(f"{API}/matches/alice:bob")
        assert match.status_code == 200
        assert sorted(match.json()["user_ids"]) == ["alice", "bob"]

        stats = await api_client.get(f"{API}/matches/user/bob/stats")
        assert stats.json() == {"total_matches": 1, "active_matches": 1, "recent_matches": 1}

        posts = await api_client.get(f"{API}/matches/user/alice/posts")
        assert [item["post"]["id"] for item in posts.json()] == ["bob-post"]

    async def test_unknown_post(self, seeded, api_client):
        response = await _swipe(api_client, "alice", "missing", "bob")
        assert response.status_code == 404

    async def test_author_mismatch(self, seeded, api_client):
        response = await _swipe(api_client, "alice", "bob-post", "carol")
        assert response.status_code == 400

    async def test_self_swipe_is_invalid(self, seeded, api_client):
        response = await _swipe(api_client, "alice", "alice-post", "alice")
        assert response.status_code == 422

    async def test_invalid_direction(self, seeded, api_client):
        response = await _swipe(api_client, "alice", "bob-post", "bob", "superlike")
        assert response.status_code == 422

    async def test_history_and_stats(self, seeded, api_client):
        await _swipe(api_client, "alice", "bob-post", "bob", "reject")
        await _swipe(api_client, "alice", "bob-post", "bob", "accept")

        history = await api_client.get(f"{API}/swipes/alice/history", params={"limit": 10})
        assert history.status_code == 200
        assert [swipe["direction"] for swipe in history.json()] == ["accept", "reject"]

        stats = await api_client.get(f"{API}/swipes/alice/stats")
        assert stats.json()["total_swipes"] == 2
        assert stats.json()["accept_ratio"] == pytest.approx(0.5)

    async def test_unknown_match(self, seeded, api_client):
        response = await api_client.get(f"{API}/matches/nobody:nowhere")
        assert response.status_code == 404


class TestPreferencesAPI:

    async def test_refresh_and_read(self, seeded, api_client):
        await _swipe(api_client, "alice", "bob-post", "bob")

        refresh = await api_client.post(f"{API}/preferences/alice/refresh")
        assert refresh.status_code == 200
        assert refresh.json()["updated"] is True
        assert refresh.json()["sample_size"] == 1

        response = await api_client.get(f"{API}/preferences/alice")
        data = response.json()
        assert data["has_preferences"] is True
        assert data["music_preferences"]["mood_tags"] == ["chill"]
        assert data["music_preferences"]["audio_features"]["energy"] == pytest.approx(0.2)
        assert data["last_preferences_update"] is not None

    async def test_unknown_user(self, seeded, api_client):
        response = await api_client.get(f"{API}/preferences/ghost")
        assert response.status_code == 404


class TestPostsAPI:

    async def test_posted_today(self, seeded, api_client):
        response = await api_client.get(f"{API}/posts/alice/posted-today")

        assert response.status_code == 200
        assert response.json()["has_posted_today"] is True

    async def test_active_posts(self, seeded, api_client):
        response = await api_client.get(f"{API}/posts/active")

        assert response.status_code == 200
        assert {post["id"] for post in response.json()["posts"]} == {"alice-post", "bob-post"}

    async def test_cleanup_keeps_active_posts(self, seeded, api_client):
        response = await api_client.post(f"{API}/posts/cleanup")

        assert response.status_code == 200
        assert response.json() == {"posts_deleted": 0, "swipes_deleted": 0}

    async def test_archive_and_month(self, seeded, db_session, api_client):
        db_session.add(make_post_row("old", "alice", created_at=datetime(2025, 1, 15, 20, 0, tzinfo=timezone.utc)))
        await db_session.commit()

        archive = await api_client.get(f"{API}/posts/alice/archive")
        assert archive.status_code == 200
        assert [post["id"] for post in archive.json()["months"]["2025-01"]] == ["old"]

        month = await api_client.get(f"{API}/posts/alice/months/2025/1")
        assert month.status_code == 200
        assert [post["id"] for post in month.json()["posts"]] == ["old"]

    async def test_invalid_month(self, api_client):
        response = await api_client.get(f"{API}/posts/alice/months/2025/13")
        assert response.status_code == 422


class TestHealthAPI:

    async def test_live(self, api_client):
        response = await api_client.get(f"{API}/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    async def test_health(self, api_client):
        response = await api_client.get(f"{API}/health/")

        assert response.status_code == 200
        assert response.json()["checks"] == {"database": "healthy", "window": "healthy"}

    async def test_request_id_is_echoed(self, api_client):
        response = await api_client.get(f"{API}/health/live", headers={"X-Request-ID": "req-123"})

        assert response.headers["X-Request-ID"] == "req-123"
