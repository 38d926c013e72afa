"""Tests for link submission, reports, comments and moderation."""

from datetime import datetime, timezone

import pytest

from linktory.exceptions import (
    CommentLimitError,
    DuplicateReportError,
    InvalidUrlError,
    LinkExistsError,
    LinkNotFoundError,
    LinkStateError,
    SelfReportError,
)
from linktory.models import Comment, Link, Report, ScoreLog
from linktory.services import link_service
from linktory.services.link_state import LinkStatus
from tests.factories import added_of_type, make_link, make_result, make_user


class TestNormalizeUrl:
    @pytest.mark.parametrize(
        "url",
        ["https://example.com", "http://example.com/path?q=1", "  https://example.com  "],
    )
    def test_accepts_http_urls(self, url):
        assert link_service.normalize_url(url) == url.strip()

    @pytest.mark.parametrize(
        "url", ["example.com", "ftp://example.com", "", "https://", "javascript:alert(1)"]
    )
    def test_rejects_everything_else(self, url):
        with pytest.raises(InvalidUrlError):
            link_service.normalize_url(url)


class TestAddLink:
    @pytest.mark.asyncio
    async def test_new_link_is_pending_and_rewarded(self, db_session):
        user = make_user(telegram_id=1, points=0)
        db_session.execute.return_value = make_result(scalar=None)

        link, result = await link_service.add_link(db_session, user, " https://new.example ")

        assert link.url == "https://new.example"
        assert link.status == "pending"
        assert link.submitted_by == 1
        assert len(link.public_id) == 8
        assert result.points_delta == 2
        assert user.points == 2
        assert added_of_type(db_session, Link) == [link]
        assert len(added_of_type(db_session, ScoreLog)) == 1

    @pytest.mark.asyncio
    async def test_duplicate_url(self, db_session):
        user = make_user(points=0)
        db_session.execute.return_value = make_result(scalar=make_link())

        with pytest.raises(LinkExistsError):
            await link_service.add_link(db_session, user, "https://example.com")
        assert user.points == 0

    @pytest.mark.asyncio
    async def test_invalid_url_never_queries(self, db_session):
        with pytest.raises(InvalidUrlError):
            await link_service.add_link(db_session, make_user(), "not a link")
        db_session.execute.assert_not_awaited()


class TestReportLink:
    @pytest.mark.asyncio
    async def test_unknown_url_is_recorded_as_reported(self, db_session):
        user = make_user(telegram_id=1)
        db_session.execute.side_effect = [make_result(scalar=None), make_result(scalar=1)]

        link, result = await link_service.report_link(db_session, user, "https://scam.example")

        assert link.status == "reported"
        assert link.submitted_by is None
        [report] = added_of_type(db_session, Report)
        assert report.reason == "No reason"
        assert report.reported_by == 1
        assert result.points_delta == 3

    @pytest.mark.asyncio
    async def test_pending_link_becomes_reported(self, db_session):
        link = make_link(status="pending", submitted_by=2)
        db_session.execute.side_effect = [
            make_result(scalar=link),
            make_result(scalar=None),
            make_result(scalar=1),
        ]

        await link_service.report_link(db_session, make_user(1), link.url, "phishing")

        assert link.status == "reported"
        [report] = added_of_type(db_session, Report)
        assert report.reason == "phishing"

    @pytest.mark.asyncio
    async def test_threshold_moves_to_review(self, db_session):
        link = make_link(status="reported", submitted_by=2)
        db_session.execute.side_effect = [
            make_result(scalar=link),
            make_result(scalar=None),
            make_result(scalar=3),
        ]

        await link_service.report_link(db_session, make_user(1), link.url)

        assert link.status == "under_review"

    @pytest.mark.asyncio
    async def test_verified_link_is_reopened(self, db_session):
        link = make_link(status="verified", submitted_by=2, votes_legit=5, votes_scam=1)
        db_session.execute.side_effect = [
            make_result(scalar=link),
            make_result(scalar=None),
            make_result(scalar=1),
        ]

        await link_service.report_link(db_session, make_user(1), link.url)

        assert link.status == "reported"
        assert link.votes_legit == 0
        assert link.votes_scam == 0

    @pytest.mark.asyncio
    async def test_review_threshold_counts_reports_since_settlement(self, db_session):
        settled = datetime(2026, 1, 1, tzinfo=timezone.utc)
        link = make_link(status="verified", submitted_by=2, settled_at=settled)
        db_session.execute.side_effect = [
            make_result(scalar=link),
            make_result(scalar=None),
            make_result(scalar=1),
        ]

        await link_service.report_link(db_session, make_user(1), link.url)

        count_query = str(db_session.execute.await_args_list[2].args[0])
        assert "reports.created_at >" in count_query
        assert link.status == "reported"

    @pytest.mark.asyncio
    async def test_under_review_stays_under_review(self, db_session):
        link = make_link(status="under_review", submitted_by=2)
        db_session.execute.side_effect = [make_result(scalar=link), make_result(scalar=None)]

        await link_service.report_link(db_session, make_user(1), link.url)

        assert link.status == "under_review"

    @pytest.mark.asyncio
    async def test_self_report_rejected(self, db_session):
        link = make_link(submitted_by=1)
        db_session.execute.return_value = make_result(scalar=link)

        with pytest.raises(SelfReportError):
            await link_service.report_link(db_session, make_user(1), link.url)
        assert added_of_type(db_session, Report) == []

    @pytest.mark.asyncio
    async def test_duplicate_report_rejected(self, db_session):
        link = make_link(submitted_by=2)
        db_session.execute.side_effect = [make_result(scalar=link), make_result(scalar=17)]

        with pytest.raises(DuplicateReportError):
            await link_service.report_link(db_session, make_user(1), link.url)


class TestCommentLink:
    @pytest.mark.asyncio
    async def test_comment_added(self, db_session):
        link = make_link()
        user = make_user(1, points=0)
        db_session.execute.side_effect = [make_result(scalar=link), make_result(scalar=2)]

        comment, result = await link_service.comment_link(
            db_session, user, link.url, "  looks fine  "
        )

        assert comment.body == "looks fine"
        assert comment.link_id == link.id
        assert added_of_type(db_session, Comment) == [comment]
        assert result.points_delta == 1

    @pytest.mark.asyncio
    async def test_comment_limit(self, db_session):
        db_session.execute.side_effect = [make_result(scalar=make_link()), make_result(scalar=3)]

        with pytest.raises(CommentLimitError) as exc_info:
            await link_service.comment_link(db_session, make_user(1), "https://example.com", "hi")
        assert exc_info.value.limit == 3

    @pytest.mark.asyncio
    async def test_unknown_link(self, db_session):
        db_session.execute.return_value = make_result(scalar=None)

        with pytest.raises(LinkNotFoundError):
            await link_service.comment_link(db_session, make_user(1), "https://nowhere.example", "hi")


class TestModerateLink:
    @pytest.mark.asyncio
    async def test_verified_rewards_submitter_and_penalizes_reporters(self, db_session):
        link = make_link(status="reported", submitted_by=2)
        submitter = make_user(2, trust_score=100)
        reporters = [make_user(3, trust_score=100), make_user(4, trust_score=5)]
        db_session.execute.side_effect = [
            make_result(scalar=submitter),
            make_result(scalars=reporters),
        ]

        results = await link_service.moderate_link(db_session, link, "verified")

        assert link.status == "verified"
        assert link.settled_at is not None
        assert submitter.trust_score == 102
        assert [r.trust_score for r in reporters] == [90, 0]
        assert len(results) == 3

    @pytest.mark.asyncio
    async def test_scam_penalizes_submitter_and_rewards_reporters(self, db_session):
        link = make_link(status="under_review", submitted_by=2)
        submitter = make_user(2, trust_score=100)
        reporter = make_user(3, trust_score=198)
        db_session.execute.side_effect = [
            make_result(scalar=submitter),
            make_result(scalars=[reporter]),
        ]

        await link_service.moderate_link(db_session, link, LinkStatus.SCAM)

        assert link.status == "scam"
        assert submitter.trust_score == 80
        assert reporter.trust_score == 200

    @pytest.mark.asyncio
    async def test_link_without_submitter(self, db_session):
        link = make_link(status="reported", submitted_by=None)
        reporter = make_user(3, trust_score=100)
        db_session.execute.return_value = make_result(scalars=[reporter])

        results = await link_service.moderate_link(db_session, link, "scam")

        assert len(results) == 1
        assert reporter.trust_score == 105
        db_session.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_non_final_status_settles_nothing(self, db_session):
        link = make_link(status="reported")

        results = await link_service.moderate_link(db_session, link, "under_review")

        assert results == []
        assert link.status == "under_review"
        assert link.settled_at is None
        db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_transition(self, db_session):
        link = make_link(status="verified")

        with pytest.raises(LinkStateError):
            await link_service.moderate_link(db_session, link, "scam")
        assert link.status == "verified"

    @pytest.mark.asyncio
    async def test_settled_at_advances(self, db_session):
        earlier = datetime(2026, 1, 1, tzinfo=timezone.utc)
        link = make_link(status="reported", submitted_by=None, settled_at=earlier)
        db_session.execute.return_value = make_result(scalars=[])

        await link_service.moderate_link(db_session, link, "verified")

        assert link.settled_at > earlier


class TestLookups:
    @pytest.mark.asyncio
    async def test_check_unknown_link(self, db_session):
        db_session.execute.return_value = make_result(scalar=None)

        assert await link_service.check_link(db_session, "https://example.com") is None

    @pytest.mark.asyncio
    async def test_public_id_not_found(self, db_session):
        db_session.execute.return_value = make_result(scalar=None)

        with pytest.raises(LinkNotFoundError):
            await link_service.get_link_by_public_id(db_session, "deadbeef")

    @pytest.mark.asyncio
    async def test_search(self, db_session):
        links = [make_link(1), make_link(2, url="https://example.org")]
        db_session.execute.return_value = make_result(scalars=links)

        assert await link_service.search_links(db_session, "example") == links

    @pytest.mark.asyncio
    async def test_recent_reports_pairs_url(self, db_session):
        report = Report(id=1, link_id=1, reported_by=3, reason="spam")
        db_session.execute.return_value = make_result(rows=[(report, "https://example.com")])

        assert await link_service.recent_reports(db_session) == [(report, "https://example.com")]
