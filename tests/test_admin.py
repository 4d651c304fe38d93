"""Tests for moderation and platform statistics."""

from datetime import datetime

import pytest
import pytest_asyncio

from skillswap import models
from skillswap.errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from skillswap.pipelines import admin, matching, notifications, ratings, sessions


@pytest_asyncio.fixture
async def moderator(make_user):
    return await make_user("Mod", teach=["Chess"], admin=True)


@pytest.mark.asyncio
class TestBans:
    async def test_ban_and_unban(self, session, moderator, swap_pair):
        alice, bob = swap_pair

        banned = await admin.ban_user(session, moderator.id, bob.id, "Spam")

        assert banned.is_banned is True
        assert banned.banned_reason == "Spam"
        assert await matching.find_matches(session, alice.id) == []

        unbanned = await admin.unban_user(session, moderator.id, bob.id)
        assert unbanned.is_banned is False
        assert unbanned.banned_reason is None
        assert [m.user.id for m in await matching.find_matches(session, alice.id)] == [bob.id]

    async def test_requires_admin(self, session, swap_pair):
        alice, bob = swap_pair
        with pytest.raises(PermissionDeniedError):
            await admin.ban_user(session, alice.id, bob.id, "Spam")
        with pytest.raises(PermissionDeniedError):
            await admin.list_users(session, alice.id)

    async def test_reason_required_and_no_self_ban(self, session, moderator, swap_pair):
        _, bob = swap_pair
        with pytest.raises(ValidationFailedError):
            await admin.ban_user(session, moderator.id, bob.id, "   ")
        with pytest.raises(ValidationFailedError):
            await admin.ban_user(session, moderator.id, moderator.id, "Testing")

    async def test_list_users_filters(self, session, moderator, swap_pair):
        alice, bob = swap_pair
        await admin.ban_user(session, moderator.id, bob.id, "Spam")

        assert [u.id for u in await admin.list_users(session, moderator.id, query="ALICE")] == [alice.id]
        assert [u.id for u in await admin.list_users(session, moderator.id, banned_only=True)] == [bob.id]
        assert len(await admin.list_users(session, moderator.id)) == 3

    async def test_query_wildcards_are_literal(self, session, moderator, swap_pair):
        assert await admin.list_users(session, moderator.id, query="%") == []
        assert await admin.list_users(session, moderator.id, query="a_i") == []


@pytest.mark.asyncio
class TestWarningsAndReports:
    async def test_warning_notifies_user(self, session, moderator, swap_pair):
        alice, _ = swap_pair

        warning = await admin.issue_warning(session, moderator.id, alice.id, "Be kind")

        assert warning.issued_by == moderator.id
        inbox = await notifications.get_user_notifications(session, alice.id)
        assert inbox[0].type == models.NotificationType.SYSTEM.value
        assert inbox[0].message == "Be kind"

    async def test_report_lifecycle(self, session, moderator, swap_pair):
        alice, bob = swap_pair

        report = await admin.create_report(
            session, alice.id, bob.id, models.ReportReason.HARASSMENT, "  Sends links  ", ["https://x.test/1"]
        )
        assert report.status == models.ReportStatus.OPEN.value
        assert report.description == "Sends links"

        reviewing = await admin.resolve_report(
            session, moderator.id, report.id, models.ReportStatus.UNDER_REVIEW
        )
        assert reviewing.resolved_at is None

        resolved = await admin.resolve_report(
            session, moderator.id, report.id, models.ReportStatus.RESOLVED, notes="Warned"
        )
        assert resolved.resolved_at is not None
        assert resolved.resolved_by == moderator.id

        assert await admin.list_reports(session, moderator.id, models.ReportStatus.OPEN) == []
        assert [r.id for r in await admin.list_reports(session, moderator.id)] == [report.id]

    async def test_cannot_report_self(self, session, swap_pair):
        alice, _ = swap_pair
        with pytest.raises(ValidationFailedError):
            await admin.create_report(session, alice.id, alice.id, models.ReportReason.OTHER)

    async def test_cannot_reopen_report(self, session, moderator, swap_pair):
        alice, bob = swap_pair
        report = await admin.create_report(session, alice.id, bob.id, models.ReportReason.HARASSMENT)
        with pytest.raises(ValidationFailedError):
            await admin.resolve_report(session, moderator.id, report.id, models.ReportStatus.OPEN)
        with pytest.raises(NotFoundError):
            await admin.resolve_report(session, moderator.id, "missing", models.ReportStatus.DISMISSED)


@pytest.mark.asyncio
class TestPlatformStatistics:
    async def test_counts(self, session, moderator, swap_pair, accepted_request):
        alice, bob = swap_pair
        scheduled = await sessions.schedule_session(
            session, accepted_request.id, alice.id, datetime(2030, 5, 1, 18, 0)
        )
        await sessions.complete_session(session, scheduled.id, bob.id)
        await ratings.create_rating(session, bob.id, scheduled.id, 5, "Great guitar lesson")
        await ratings.create_rating(session, alice.id, scheduled.id, 4, "Good Spanish practice")
        await admin.ban_user(session, moderator.id, bob.id, "Spam")

        stats = await admin.get_platform_statistics(session, moderator.id)

        assert stats.total_users == 3
        assert stats.active_users == 2
        assert stats.banned_users == 1
        assert stats.total_swaps_completed == 1
        assert stats.total_skills_exchanged == 2
        assert stats.average_platform_rating == 4.5
        assert stats.new_users_this_month == 3
        assert stats.swaps_completed_this_month == 1
        assert stats.active_conversations == 1
        assert stats.average_sessions_per_user == 0.3
        assert stats.average_rating_per_rating == 4.5

    async def test_requires_admin(self, session, swap_pair):
        alice, _ = swap_pair
        with pytest.raises(PermissionDeniedError):
            await admin.get_platform_statistics(session, alice.id)
