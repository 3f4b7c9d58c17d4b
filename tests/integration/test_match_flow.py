"""
Integration tests for the swipe, match and feed flow.

These run the real repositories and services against an in-memory SQLite
database.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from songmatch.core.exceptions import MatchAlreadyExistsError
from songmatch.models.database import Match, Post, Swipe, SwipeDirection
from songmatch.repositories.match_repository import MatchRepository
from songmatch.services.discovery_service import DiscoveryService
from songmatch.services.match_service import MatchService
from songmatch.services.post_lifecycle import PostLifecycleService
from songmatch.services.preference_service import PreferenceService
from songmatch.services.swipe_service import SwipeService
from tests import NOW, WINDOW_START, make_post_row, make_user_row

ACCEPT = SwipeDirection.ACCEPT
REJECT = SwipeDirection.REJECT


@pytest.fixture
async def seeded(db_session):
    """Three users, one post each in the current window."""
    db_session.add_all([
        make_user_row("alice", questionnaire={"moodGenre": "indie"}),
        make_user_row("bob", questionnaire={"moodGenre": "indie"}),
        make_user_row("carol", friends=["alice"]),
        make_post_row(
            "alice-post", "alice",
            mood="happy",
            song={"title": "Sunny", "artist": "A", "audioFeatures": {"energy": 0.8, "valence": 0.9}}
        ),
        make_post_row("bob-post", "bob", created_at=NOW - timedelta(hours=2), mood="sad"),
        make_post_row("carol-post", "carol", created_at=NOW - timedelta(hours=3)),
    ])
    await db_session.commit()


@pytest.fixture
def match_service(user_repository, post_repository, swipe_repository, match_repository, window):
    return MatchService(
        user_repository=user_repository,
        post_repository=post_repository,
        swipe_repository=swipe_repository,
        match_repository=match_repository,
        window=window
    )


@pytest.fixture
def swipe_service(swipe_repository, match_service, user_repository, post_repository, match_repository, window):
    return SwipeService(
        swipe_repository=swipe_repository,
        match_service=match_service,
        user_repository=user_repository,
        post_repository=post_repository,
        match_repository=match_repository,
        window=window
    )


@pytest.fixture
def preference_service(user_repository, post_repository, swipe_repository):
    return PreferenceService(user_repository, post_repository, swipe_repository)


@pytest.fixture
def discovery_service(
    user_repository, post_repository, swipe_repository, match_repository, preference_service, window
):
    return DiscoveryService(
        user_repository=user_repository,
        post_repository=post_repository,
        swipe_repository=swipe_repository,
        match_repository=match_repository,
        preference_service=preference_service,
        window=window,
        result_cap=15
    )


async def _count(db_session, model) -> int:
    result = await db_session.execute(select(func.count()).select_from(model))
    return result.scalar()


class TestMatchFlow:

    async def test_mutual_accept_creates_one_match(self, seeded, swipe_service, match_service, db_session):
        assert await swipe_service.record_swipe("alice", "bob-post", "bob", ACCEPT) is None

        match_id = await swipe_service.record_swipe("bob", "alice-post", "alice", ACCEPT)
        assert match_id == "alice:bob"

        # Swiping again once matched is not an error and creates nothing
        assert await swipe_service.record_swipe("alice", "bob-post", "bob", ACCEPT) is None
        assert await _count(db_session, Match) == 1
        assert await _count(db_session, Swipe) == 3

        matches = await match_service.get_user_matches("bob")
        assert len(matches) == 1
        assert sorted(matches[0].user_ids) == ["alice", "bob"]
        assert matches[0].users["alice"].display_name == "User alice"
        assert matches[0].other_user("bob") == "alice"

    async def test_direct_duplicate_insert_is_rejected(self, seeded, match_service, session_factory):
        await match_service.create_match("alice", "bob")

        # A second request with its own session hits the pair key
        async with session_factory() as other_session:
            other_repository = MatchRepository(other_session)
            with pytest.raises(MatchAlreadyExistsError):
                await other_repository.create_match("bob", "alice", {})

            assert await other_repository.are_users_matched("bob", "alice") is True

    async def test_ids_containing_separator_get_distinct_matches(self, match_repository, db_session):
        first = await match_repository.create_match("a:b", "c", {})
        second = await match_repository.create_match("a", "b:c", {})

        assert first.id != second.id
        assert await _count(db_session, Match) == 2
        assert await match_repository.are_users_matched("c", "a:b") is True
        assert await match_repository.are_users_matched("b:c", "a") is True
        assert await match_repository.are_users_matched("a", "c") is False

    async def test_reject_only_does_not_match(self, seeded, swipe_service, db_session):
        await swipe_service.record_swipe("alice", "bob-post", "bob", REJECT)

        assert await swipe_service.record_swipe("bob", "alice-post", "alice", ACCEPT) is None
        assert await _count(db_session, Match) == 0

    async def test_latest_swipe_wins(self, seeded, swipe_service, swipe_repository, db_session):
        await swipe_service.record_swipe("bob", "alice-post", "alice", ACCEPT)
        await swipe_service.record_swipe("bob", "alice-post", "alice", REJECT)

        assert await swipe_repository.get_accepted_post_ids("bob") == []
        assert await swipe_service.record_swipe("alice", "bob-post", "bob", ACCEPT) is None
        assert await _count(db_session, Match) == 0

        stats = await swipe_service.get_swipe_stats("bob")
        assert (stats.accepts, stats.rejects) == (1, 1)

    async def test_matched_users_posts(self, seeded, swipe_service, match_service):
        await swipe_service.record_swipe("alice", "bob-post", "bob", ACCEPT)
        await swipe_service.record_swipe("bob", "alice-post", "alice", ACCEPT)

        items = await match_service.get_matched_users_posts("alice", now=NOW)

        assert [item.post.id for item in items] == ["bob-post"]
        assert items[0].match_id == "alice:bob"


class TestFeedFlow:

    async def test_feed_excludes_friends_and_swiped(self, seeded, discovery_service, swipe_service):
        feed = await discovery_service.assemble_feed("carol", now=NOW)
        # alice is carol's friend
        assert [entry.post.id for entry in feed] == ["bob-post"]

        await swipe_service.record_swipe("carol", "bob-post", "bob", REJECT)
        assert await discovery_service.assemble_feed("carol", now=NOW) == []

    async def test_feed_excludes_matched_users(self, seeded, discovery_service, swipe_service):
        await swipe_service.record_swipe("alice", "bob-post", "bob", ACCEPT)
        await swipe_service.record_swipe("bob", "alice-post", "alice", ACCEPT)

        feed = await discovery_service.assemble_feed("alice", now=NOW)
        assert [entry.post.id for entry in feed] == ["carol-post"]

    async def test_feed_refreshes_preferences(self, seeded, discovery_service, swipe_service, user_repository):
        await swipe_service.record_swipe("bob", "alice-post", "alice", ACCEPT)

        await discovery_service.assemble_feed("bob", now=NOW)

        profile = await user_repository.get_profile("bob")
        assert profile.music_preferences.mood_tags == ["happy"]
        assert profile.music_preferences.audio_features.energy == pytest.approx(0.8)

    async def test_unswiped_listing(self, seeded, swipe_service):
        await swipe_service.record_swipe("bob", "carol-post", "carol", REJECT)

        assert await swipe_service.get_unswiped_post_ids("bob", now=NOW) == ["alice-post"]


class TestPostWindow:

    async def test_window_boundary_is_exclusive(self, db_session, post_repository):
        db_session.add_all([
            make_post_row("at-boundary", "alice", created_at=WINDOW_START),
            make_post_row("just-after", "bob", created_at=WINDOW_START + timedelta(seconds=1)),
            make_post_row("yesterday", "carol", created_at=WINDOW_START - timedelta(hours=1)),
        ])
        await db_session.commit()

        posts = await post_repository.query_recent_posts(after=WINDOW_START)

        assert [post.id for post in posts] == ["just-after"]
        assert posts[0].created_at.tzinfo is not None

    async def test_cleanup_removes_expired_posts_and_swipes(
        self, db_session, post_repository, swipe_repository, window
    ):
        db_session.add_all([
            make_post_row("old", "alice", created_at=WINDOW_START - timedelta(hours=5)),
            make_post_row("fresh", "alice", created_at=NOW - timedelta(minutes=10)),
        ])
        await db_session.commit()
        await swipe_repository.append("bob", "old", "alice", ACCEPT)
        await swipe_repository.append("carol", "old", "alice", REJECT)
        await swipe_repository.append("bob", "fresh", "alice", ACCEPT)

        lifecycle = PostLifecycleService(post_repository, swipe_repository, window=window)
        result = await lifecycle.cleanup_expired_posts(now=NOW)

        assert (result.posts_deleted, result.swipes_deleted) == (1, 2)
        assert await _count(db_session, Post) == 1
        assert await swipe_repository.get_swiped_post_ids("bob") == {"fresh"}
        assert await lifecycle.has_posted_today("alice", now=NOW) is True

    async def test_archive_and_month_listing(self, db_session, post_repository, swipe_repository, window):
        march_start = window.month_start(2026, 3)
        db_session.add_all([
            make_post_row("march-first", "alice", created_at=march_start),
            make_post_row("feb-last", "alice", created_at=march_start - timedelta(minutes=30)),
            make_post_row("jan", "alice", created_at=window.month_start(2026, 1) + timedelta(days=3)),
            make_post_row("other-author", "bob", created_at=march_start - timedelta(days=2)),
        ])
        await db_session.commit()

        lifecycle = PostLifecycleService(post_repository, swipe_repository, window=window)

        archive = await lifecycle.get_archived_posts("alice", now=NOW)
        assert {month: [post.id for post in posts] for month, posts in archive.items()} == {
            "2026-02": ["feb-last"],
            "2026-01": ["jan"],
        }

        march = await lifecycle.get_posts_by_month("alice", 2026, 3)
        assert [post.id for post in march] == ["march-first"]

        february = await lifecycle.get_posts_by_month("alice", 2026, 2)
        assert [post.id for post in february] == ["feb-last"]
