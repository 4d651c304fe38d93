"""Session scheduling and lifecycle.

Scheduled -> Ongoing -> Completed, with Cancelled reachable from Scheduled
or Ongoing. Session transitions drag the parent swap along: start -> In
Progress, complete -> Completed, and cancel -> Cancelled once no other
session of the swap is still active. A Completed swap stays Completed, and
no new session can be scheduled on a Completed or Cancelled swap.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..config import settings
from ..db import commit_or_rollback
from ..errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from .notifications import add_notification
from .swaps import get_swap_for_request, get_swap_request
from .users import get_user

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (models.SessionStatus.SCHEDULED.value, models.SessionStatus.ONGOING.value)
CLOSED_SWAP_STATUSES = (models.SwapStatus.COMPLETED.value, models.SwapStatus.CANCELLED.value)


@dataclass
class SessionBuckets:
    """Sessions split for display."""
    upcoming: list[models.SkillSession] = field(default_factory=list)
    completed: list[models.SkillSession] = field(default_factory=list)


async def get_skill_session(session: AsyncSession, session_id: str) -> models.SkillSession:
    skill_session = await session.get(models.SkillSession, session_id)
    if skill_session is None:
        raise NotFoundError(f"Session {session_id} not found")
    return skill_session


async def schedule_session(
    session: AsyncSession,
    swap_request_id: str,
    actor_id: str,
    scheduled_at: datetime,
    *,
    duration: int | None = None,
    meeting_type: models.MeetingType = models.MeetingType.VIDEO,
    meeting_link: str | None = None,
    description: str | None = None,
    skill_topic: str | None = None,
) -> models.SkillSession:
    """Schedule a session for an accepted swap request.

    Creates the swap record (Confirmed) on first scheduling; later sessions
    reuse it. The request sender is the teacher of the swap.

    Args:
        session: Database session
        swap_request_id: Accepted request the session belongs to
        actor_id: User scheduling, must be a party to the request
        scheduled_at: Start time (UTC)
        duration: Length in minutes (default from settings)
        meeting_type: Video Call, Audio Call, In Person or None
        meeting_link: Optional join link
        description: Optional agenda
        skill_topic: Optional topic (defaults to the exchanged skills)

    Returns:
        The Scheduled SkillSession

    Raises:
        NotFoundError: If the request does not exist
        PermissionDeniedError: If the actor is not a party to the request
        ConflictError: If the request is not Accepted or its swap is closed
        ValidationFailedError: If the duration is not positive
    """
    scheduled_at = models.naive_utc(scheduled_at)
    duration = duration if duration is not None else settings.sessions.default_duration_minutes
    if duration <= 0:
        raise ValidationFailedError("Session duration must be positive")

    request = await get_swap_request(session, swap_request_id)
    if actor_id not in (request.sender_id, request.recipient_id):
        raise PermissionDeniedError(f"User {actor_id} is not part of swap request {swap_request_id}")
    if request.status != models.SwapRequestStatus.ACCEPTED.value:
        raise ConflictError(f"Swap request {swap_request_id} is {request.status}, not Accepted")

    now = datetime.utcnow()
    swap = await get_swap_for_request(session, swap_request_id)
    if swap is None:
        swap = models.Swap(
            id=models.new_id(),
            swap_request_id=request.id,
            teacher_id=request.sender_id,
            teacher_name=request.sender_name,
            learner_id=request.recipient_id,
            learner_name=request.recipient_name,
            skill_being_taught=dict(request.skill_offered),
            skill_being_learned=dict(request.skill_requested),
            status=models.SwapStatus.CONFIRMED.value,
            created_at=now,
        )
        session.add(swap)
        logger.info(f"Created swap {swap.id} for request {swap_request_id}")
    elif swap.status in CLOSED_SWAP_STATUSES:
        raise ConflictError(f"Swap {swap.id} is {swap.status}, no more sessions can be scheduled")

    topic = (skill_topic or "").strip() or (
        f"{request.skill_offered['name']} / {request.skill_requested['name']}"
    )
    skill_session = models.SkillSession(
        id=models.new_id(),
        swap_id=swap.id,
        swap_request_id=request.id,
        host_id=request.sender_id,
        guest_id=request.recipient_id,
        skill_topic=topic,
        session_type=request.session_type,
        description=description,
        scheduled_at=scheduled_at,
        duration=duration,
        meeting_link=meeting_link,
        meeting_type=models.MeetingType(meeting_type).value,
        status=models.SessionStatus.SCHEDULED.value,
        created_at=now,
    )
    session.add(skill_session)

    other_id = request.recipient_id if actor_id == request.sender_id else request.sender_id
    add_notification(
        session,
        other_id,
        models.NotificationType.SESSION_REMINDER,
        "Session scheduled",
        f"{topic} on {scheduled_at:%Y-%m-%d %H:%M} UTC ({duration} min)",
        related_item_id=skill_session.id,
        related_user_id=actor_id,
    )
    await commit_or_rollback(session, f"scheduling session for request {swap_request_id}")
    logger.info(f"Scheduled session {skill_session.id} at {scheduled_at.isoformat()}")
    return skill_session


async def get_user_sessions(session: AsyncSession, user_id: str) -> list[models.SkillSession]:
    result = await session.execute(
        select(models.SkillSession)
        .where(
            or_(
                models.SkillSession.host_id == user_id,
                models.SkillSession.guest_id == user_id,
            )
        )
        .order_by(models.SkillSession.scheduled_at)
    )
    return list(result.scalars().all())


def categorize_sessions(sessions: list[models.SkillSession], now: datetime) -> SessionBuckets:
    """Upcoming (scheduled, in the future, soonest first) and completed (latest first)."""
    upcoming = [
        s for s in sessions
        if s.status == models.SessionStatus.SCHEDULED.value and s.scheduled_at > now
    ]
    upcoming.sort(key=lambda s: s.scheduled_at)

    completed = [s for s in sessions if s.status == models.SessionStatus.COMPLETED.value]
    completed.sort(key=lambda s: s.completed_at or s.scheduled_at, reverse=True)
    return SessionBuckets(upcoming=upcoming, completed=completed)


def can_join_session(skill_session: models.SkillSession, now: datetime) -> bool:
    """Joinable from the join window before start until the end of the slot."""
    if skill_session.status != models.SessionStatus.SCHEDULED.value:
        return False
    opens = skill_session.scheduled_at - timedelta(minutes=settings.sessions.join_window_minutes)
    closes = skill_session.scheduled_at + timedelta(minutes=skill_session.duration)
    return opens <= now <= closes


async def _load_for_transition(
    session: AsyncSession,
    session_id: str,
    actor_id: str,
    allowed_from: tuple[str, ...],
    target: models.SessionStatus,
) -> tuple[models.SkillSession, models.Swap | None]:
    skill_session = await get_skill_session(session, session_id)
    if actor_id not in skill_session.participant_ids:
        raise PermissionDeniedError(f"User {actor_id} is not part of session {session_id}")
    if skill_session.status not in allowed_from:
        raise ConflictError(
            f"Session {session_id} is {skill_session.status}, cannot become {target.value}"
        )
    swap = await session.get(models.Swap, skill_session.swap_id) if skill_session.swap_id else None
    return skill_session, swap


async def _has_other_active_sessions(session: AsyncSession, swap_id: str, session_id: str) -> bool:
    count = await session.scalar(
        select(func.count())
        .select_from(models.SkillSession)
        .where(
            models.SkillSession.swap_id == swap_id,
            models.SkillSession.id != session_id,
            models.SkillSession.status.in_(ACTIVE_STATUSES),
        )
    )
    return bool(count)


async def start_session(session: AsyncSession, session_id: str, actor_id: str) -> models.SkillSession:
    skill_session, swap = await _load_for_transition(
        session,
        session_id,
        actor_id,
        (models.SessionStatus.SCHEDULED.value,),
        models.SessionStatus.ONGOING,
    )
    now = datetime.utcnow()
    skill_session.status = models.SessionStatus.ONGOING.value
    skill_session.started_at = now
    if swap is not None and swap.status != models.SwapStatus.COMPLETED.value:
        swap.status = models.SwapStatus.IN_PROGRESS.value
        swap.started_at = swap.started_at or now

    await commit_or_rollback(session, f"starting session {session_id}")
    logger.info(f"Session {session_id} started by {actor_id}")
    return skill_session


async def complete_session(session: AsyncSession, session_id: str, actor_id: str) -> models.SkillSession:
    """Complete a session and credit both participants.

    Both users get one more completed swap, taught skill and learned skill,
    and a Session Completed notification.
    """
    skill_session, swap = await _load_for_transition(
        session, session_id, actor_id, ACTIVE_STATUSES, models.SessionStatus.COMPLETED
    )
    now = datetime.utcnow()
    skill_session.status = models.SessionStatus.COMPLETED.value
    skill_session.completed_at = now
    if swap is not None and swap.status != models.SwapStatus.COMPLETED.value:
        swap.status = models.SwapStatus.COMPLETED.value
        swap.completed_at = now
    if skill_session.swap_request_id:
        request = await session.get(models.SwapRequest, skill_session.swap_request_id)
        if request is not None:
            request.completed_at = now

    for user_id in skill_session.participant_ids:
        user = await get_user(session, user_id)
        user.total_swaps_completed = (user.total_swaps_completed or 0) + 1
        user.total_skills_taught = (user.total_skills_taught or 0) + 1
        user.total_skills_learned = (user.total_skills_learned or 0) + 1
        user.updated_at = now
        add_notification(
            session,
            user_id,
            models.NotificationType.SESSION_COMPLETED,
            "Session completed",
            f"'{skill_session.skill_topic}' is complete. Leave a rating for your partner.",
            related_item_id=skill_session.id,
        )

    await commit_or_rollback(session, f"completing session {session_id}")
    logger.info(f"Session {session_id} completed by {actor_id}")
    return skill_session


async def cancel_session(session: AsyncSession, session_id: str, actor_id: str) -> models.SkillSession:
    skill_session, swap = await _load_for_transition(
        session, session_id, actor_id, ACTIVE_STATUSES, models.SessionStatus.CANCELLED
    )
    now = datetime.utcnow()
    skill_session.status = models.SessionStatus.CANCELLED.value
    skill_session.cancelled_at = now
    if (
        swap is not None
        and swap.status != models.SwapStatus.COMPLETED.value
        and not await _has_other_active_sessions(session, swap.id, session_id)
    ):
        swap.status = models.SwapStatus.CANCELLED.value

    other_id = (
        skill_session.guest_id if actor_id == skill_session.host_id else skill_session.host_id
    )
    add_notification(
        session,
        other_id,
        models.NotificationType.SYSTEM,
        "Session cancelled",
        f"'{skill_session.skill_topic}' on {skill_session.scheduled_at:%Y-%m-%d %H:%M} UTC was cancelled",
        related_item_id=skill_session.id,
        related_user_id=actor_id,
    )
    await commit_or_rollback(session, f"cancelling session {session_id}")
    logger.info(f"Session {session_id} cancelled by {actor_id}")
    return skill_session
