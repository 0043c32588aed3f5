"""Tests for ReportRepository."""

from datetime import datetime, timedelta

from repositories.report_repository import ReportRepository

BASE = datetime(2024, 5, 1, 12, 0, 0, 123456)


class TestFeedCandidates:
    async def test_newest_first_with_limit(self, db_session, make_user, make_report):
        author = await make_user("reporter")
        reports = [
            await make_report(author, created_at=BASE - timedelta(hours=i))
            for i in range(4)
        ]
        repo = ReportRepository(db_session)

        candidates = await repo.get_feed_candidates(None, 3)

        assert [r.id for r in candidates] == [r.id for r in reports[:3]]

    async def test_cursor_is_exclusive(self, db_session, make_user, make_report):
        author = await make_user("reporter")
        reports = [
            await make_report(author, created_at=BASE - timedelta(hours=i))
            for i in range(4)
        ]
        repo = ReportRepository(db_session)

        candidates = await repo.get_feed_candidates(reports[1].created_at, 10)

        assert [r.id for r in candidates] == [reports[2].id, reports[3].id]

    async def test_microseconds_are_kept(self, db_session, make_user, make_report):
        author = await make_user("reporter")
        earlier = await make_report(author, created_at=BASE)
        later = await make_report(author, created_at=BASE + timedelta(microseconds=1))
        repo = ReportRepository(db_session)

        candidates = await repo.get_feed_candidates(later.created_at, 10)

        assert [r.id for r in candidates] == [earlier.id]

    async def test_aggregate_is_loaded(self, db_session, make_user, make_report):
        author = await make_user("reporter")
        await make_report(author)
        db_session.expunge_all()

        report = (await ReportRepository(db_session).get_feed_candidates(None, 1))[0]

        assert report.author.username == "reporter"
        assert report.ai_report.short_summary == "A phone was snatched."
        assert report.comments == []
        assert report.images == []


class TestListings:
    async def test_get_by_user(self, db_session, make_user, make_report):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await make_report(alice)
        await make_report(bob)
        await make_report(alice)

        reports = await ReportRepository(db_session).get_by_user(alice.id)

        assert len(reports) == 2
        assert all(r.user_id == alice.id for r in reports)

    async def test_get_all_paginates(self, db_session, make_user, make_report):
        author = await make_user("reporter")
        for i in range(5):
            await make_report(author, created_at=BASE - timedelta(hours=i))

        page = await ReportRepository(db_session).get_all(skip=2, limit=2)

        assert len(page) == 2
        assert page[0].created_at == BASE - timedelta(hours=2)
