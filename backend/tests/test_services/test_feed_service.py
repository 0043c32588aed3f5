"""Tests for FeedService."""

from datetime import timedelta

import pytest

import repositories.db_models as db_models
from helpers.time_utils import utc_now
from models.exceptions import InvalidCursorException, UserNotFoundException
from models.votes import VoteType
from repositories.user_repository import UserRepository
from services.feed_service import FeedService


class TestPersonalizedFeed:
    async def test_following_cursor_visits_every_report_once(
        self, db_session, make_user, make_report
    ):
        """Scoring reorders pages but never loses or repeats a report."""
        viewer = await make_user("viewer", location="Islamabad")
        followed = await make_user("followed", location="Lahore")
        local = await make_user("local", location="Islamabad")
        stranger = await make_user("stranger")
        await UserRepository(db_session).follow(viewer.id, followed.id)

        authors = [followed, local, stranger]
        start = utc_now() - timedelta(hours=1)
        expected = set()
        for i in range(23):
            report = await make_report(
                authors[i % 3], created_at=start - timedelta(minutes=7 * i)
            )
            expected.add(report.id)

        seen: list[int] = []
        cursor = None
        pages = 0
        while True:
            page = await FeedService.get_personalized_feed(
                db_session, viewer.id, cursor=cursor, limit=5
            )
            pages += 1
            seen.extend(report.id for report in page.feed)
            if not page.has_more:
                assert page.next_cursor is None
                break
            assert page.next_cursor is not None
            cursor = page.next_cursor

        assert pages == 5
        assert len(seen) == len(expected)
        assert set(seen) == expected

    async def test_page_is_sorted_by_score(self, db_session, make_user, make_report):
        viewer = await make_user("viewer")
        followed = await make_user("followed")
        other = await make_user("other")
        await UserRepository(db_session).follow(viewer.id, followed.id)

        now = utc_now()
        newer = await make_report(other, created_at=now - timedelta(hours=100))
        older = await make_report(followed, created_at=now - timedelta(hours=200))

        page = await FeedService.get_personalized_feed(db_session, viewer.id, limit=10)

        assert [r.id for r in page.feed] == [older.id, newer.id]
        assert [r.relevance_score for r in page.feed] == [3, 0]
        assert page.has_more is False

    async def test_next_cursor_follows_creation_order(
        self, db_session, make_user, make_report
    ):
        viewer = await make_user("viewer")
        followed = await make_user("followed")
        other = await make_user("other")
        await UserRepository(db_session).follow(viewer.id, followed.id)

        now = utc_now() - timedelta(hours=100)
        await make_report(other, created_at=now)
        last_in_window = await make_report(followed, created_at=now - timedelta(hours=1))
        await make_report(other, created_at=now - timedelta(hours=2))

        page = await FeedService.get_personalized_feed(db_session, viewer.id, limit=2)

        # The followed report ranks first, but the cursor is the older of the two
        assert page.feed[0].id == last_in_window.id
        assert page.next_cursor == (
            last_in_window.created_at.isoformat(timespec="microseconds") + "Z"
        )

    async def test_user_vote_and_ownership_annotations(
        self, db_session, make_user, make_report
    ):
        viewer = await make_user("viewer")
        author = await make_user("author")
        reply = db_models.Reply(
            user_id=viewer.id,
            author=viewer,
            text="Same happened to me",
            upvotes=[],
            downvotes=[viewer.id],
        )
        comment = db_models.Comment(
            user_id=author.id,
            author=author,
            text="Stay safe",
            upvotes=[viewer.id],
            downvotes=[],
            replies=[reply],
        )
        await make_report(author, upvotes=[viewer.id, author.id], comments=[comment])

        page = await FeedService.get_personalized_feed(db_session, viewer.id)
        report = page.feed[0]

        assert report.user_vote == VoteType.UPVOTE
        assert report.upvotes == 2
        assert report.is_owner is False
        assert report.comments[0].user_vote == VoteType.UPVOTE
        assert report.comments[0].is_owner is False
        assert report.comments[0].replies[0].user_vote == VoteType.DOWNVOTE
        assert report.comments[0].replies[0].is_owner is True

    async def test_empty_store(self, db_session, make_user):
        viewer = await make_user("viewer")
        page = await FeedService.get_personalized_feed(db_session, viewer.id)
        assert page.feed == []
        assert page.next_cursor is None
        assert page.has_more is False

    async def test_unknown_viewer(self, db_session):
        with pytest.raises(UserNotFoundException):
            await FeedService.get_personalized_feed(db_session, 999)

    async def test_bad_cursor(self, db_session, make_user):
        viewer = await make_user("viewer")
        with pytest.raises(InvalidCursorException):
            await FeedService.get_personalized_feed(
                db_session, viewer.id, cursor="not-a-date"
            )
