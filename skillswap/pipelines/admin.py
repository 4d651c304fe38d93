"""Moderation: user bans, warnings, reports and platform statistics.

Every operation except ``create_report`` requires the acting user to hold
the admin role.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import String, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..db import commit_or_rollback
from ..errors import NotFoundError, PermissionDeniedError, ValidationFailedError
from .notifications import add_notification
from .ratings import round_half_up
from .users import get_user

logger = logging.getLogger(__name__)

ACTIVE_CONVERSATION_DAYS = 30
RESOLUTION_STATUSES = (
    models.ReportStatus.UNDER_REVIEW,
    models.ReportStatus.RESOLVED,
    models.ReportStatus.DISMISSED,
)


@dataclass
class PlatformStatistics:
    """Dashboard figures for the admin console."""
    total_users: int
    active_users: int
    banned_users: int
    total_swaps_completed: int
    total_skills_exchanged: int
    average_platform_rating: float
    new_users_this_month: int
    swaps_completed_this_month: int
    active_conversations: int
    average_sessions_per_user: float
    average_rating_per_rating: float
    computed_at: datetime


async def require_admin(session: AsyncSession, actor_id: str) -> models.User:
    actor = await get_user(session, actor_id)
    if not actor.is_admin:
        raise PermissionDeniedError(f"User {actor_id} is not an admin")
    return actor


async def list_users(
    session: AsyncSession,
    admin_id: str,
    *,
    query: str | None = None,
    banned_only: bool = False,
) -> list[models.User]:
    """All users, newest first, optionally filtered by name/email substring."""
    await require_admin(session, admin_id)

    stmt = select(models.User).order_by(models.User.created_at.desc())
    if banned_only:
        stmt = stmt.where(models.User.is_banned.is_(True))
    needle = (query or "").strip().lower()
    if needle:
        stmt = stmt.where(
            or_(
                func.lower(models.User.name, type_=String).contains(needle, autoescape=True),
                func.lower(models.User.email, type_=String).contains(needle, autoescape=True),
            )
        )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def ban_user(session: AsyncSession, admin_id: str, user_id: str, reason: str) -> models.User:
    """Ban a user; banned users drop out of matching and search.

    Raises:
        PermissionDeniedError: If the actor is not an admin
        ValidationFailedError: If no reason is given or admins target themselves
        NotFoundError: If the user does not exist
    """
    await require_admin(session, admin_id)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailedError("A ban reason is required")
    if admin_id == user_id:
        raise ValidationFailedError("Admins cannot ban themselves")

    user = await get_user(session, user_id)
    user.is_banned = True
    user.banned_reason = reason
    user.updated_at = datetime.utcnow()
    await commit_or_rollback(session, f"banning {user_id}")

    logger.info(f"Admin {admin_id} banned user {user_id}: {reason}")
    return user


async def unban_user(session: AsyncSession, admin_id: str, user_id: str) -> models.User:
    await require_admin(session, admin_id)
    user = await get_user(session, user_id)
    user.is_banned = False
    user.banned_reason = None
    user.updated_at = datetime.utcnow()
    await commit_or_rollback(session, f"unbanning {user_id}")

    logger.info(f"Admin {admin_id} unbanned user {user_id}")
    return user


async def issue_warning(
    session: AsyncSession,
    admin_id: str,
    user_id: str,
    reason: str,
    expires_at: datetime | None = None,
) -> models.UserWarning:
    """Record a warning and tell the user through a System notification."""
    await require_admin(session, admin_id)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationFailedError("A warning reason is required")

    user = await get_user(session, user_id)
    warning = models.UserWarning(
        id=models.new_id(),
        user_id=user.id,
        user_name=user.name,
        reason=reason,
        issued_by=admin_id,
        issued_at=datetime.utcnow(),
        expires_at=models.naive_utc(expires_at),
    )
    session.add(warning)
    add_notification(
        session,
        user.id,
        models.NotificationType.SYSTEM,
        "Warning from moderators",
        reason,
        related_item_id=warning.id,
    )
    await commit_or_rollback(session, f"warning {user_id}")

    logger.info(f"Admin {admin_id} warned user {user_id}")
    return warning


async def create_report(
    session: AsyncSession,
    reporter_id: str,
    reported_user_id: str,
    reason: models.ReportReason,
    description: str = "",
    evidence_urls: list[str] | None = None,
) -> models.Report:
    """File a report about another user. Open to every user."""
    if reporter_id == reported_user_id:
        raise ValidationFailedError("Cannot report yourself")

    reporter = await get_user(session, reporter_id)
    reported = await get_user(session, reported_user_id)
    report = models.Report(
        id=models.new_id(),
        reported_by_id=reporter.id,
        reported_by_name=reporter.name,
        reported_user_id=reported.id,
        reported_user_name=reported.name,
        reason=models.ReportReason(reason).value,
        description=(description or "").strip(),
        evidence_urls=list(evidence_urls or []),
        status=models.ReportStatus.OPEN.value,
        created_at=datetime.utcnow(),
    )
    session.add(report)
    await commit_or_rollback(session, f"reporting {reported_user_id}")

    logger.info(f"User {reporter_id} reported {reported_user_id} for '{report.reason}'")
    return report


async def list_reports(
    session: AsyncSession,
    admin_id: str,
    status: models.ReportStatus | None = None,
) -> list[models.Report]:
    await require_admin(session, admin_id)
    stmt = select(models.Report).order_by(models.Report.created_at.desc())
    if status is not None:
        stmt = stmt.where(models.Report.status == models.ReportStatus(status).value)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def resolve_report(
    session: AsyncSession,
    admin_id: str,
    report_id: str,
    status: models.ReportStatus,
    notes: str | None = None,
) -> models.Report:
    """Move a report to Under Review, Resolved or Dismissed."""
    await require_admin(session, admin_id)
    status = models.ReportStatus(status)
    if status not in RESOLUTION_STATUSES:
        raise ValidationFailedError(f"Cannot set report status to {status.value}")

    report = await session.get(models.Report, report_id)
    if report is None:
        raise NotFoundError(f"Report {report_id} not found")

    report.status = status.value
    report.resolved_by = admin_id
    report.resolution_notes = notes
    if status != models.ReportStatus.UNDER_REVIEW:
        report.resolved_at = datetime.utcnow()
    await commit_or_rollback(session, f"resolving report {report_id}")

    logger.info(f"Admin {admin_id} set report {report_id} to {status.value}")
    return report


async def get_platform_statistics(
    session: AsyncSession,
    admin_id: str,
    now: datetime | None = None,
) -> PlatformStatistics:
    """Aggregate platform figures.

    Completed swaps are counted once per user, so the per-user sum is halved.
    """
    await require_admin(session, admin_id)
    now = now or datetime.utcnow()
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

    users = list((await session.execute(select(models.User))).scalars().all())
    total_users = len(users)
    rated = [u.average_rating for u in users if (u.total_reviews or 0) > 0]

    swaps_this_month = await session.scalar(
        select(func.count(models.Swap.id)).where(
            models.Swap.status == models.SwapStatus.COMPLETED.value,
            models.Swap.completed_at >= month_start,
        )
    )
    active_conversations = await session.scalar(
        select(func.count(models.Conversation.id)).where(
            models.Conversation.updated_at >= now - timedelta(days=ACTIVE_CONVERSATION_DAYS)
        )
    )
    completed_sessions = await session.scalar(
        select(func.count(models.SkillSession.id)).where(
            models.SkillSession.status == models.SessionStatus.COMPLETED.value
        )
    )
    average_per_rating = await session.scalar(select(func.avg(models.Rating.rating)))

    return PlatformStatistics(
        total_users=total_users,
        active_users=sum(1 for u in users if u.is_active and not u.is_banned),
        banned_users=sum(1 for u in users if u.is_banned),
        total_swaps_completed=sum(u.total_swaps_completed or 0 for u in users) // 2,
        total_skills_exchanged=sum(u.total_skills_taught or 0 for u in users),
        average_platform_rating=round_half_up(sum(rated) / len(rated)) if rated else 0.0,
        new_users_this_month=sum(1 for u in users if u.created_at >= month_start),
        swaps_completed_this_month=swaps_this_month or 0,
        active_conversations=active_conversations or 0,
        average_sessions_per_user=(
            round_half_up((completed_sessions or 0) / total_users) if total_users else 0.0
        ),
        average_rating_per_rating=round_half_up(float(average_per_rating)) if average_per_rating else 0.0,
        computed_at=now,
    )
