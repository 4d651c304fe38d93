"""Swap request lifecycle and swap records.

Pending -> {Accepted, Rejected, Cancelled}. Every target state is terminal
and reached by a single status write.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..db import commit_or_rollback
from ..errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationFailedError
from .chat import get_or_create_conversation
from .normalization import skill_key, skill_names
from .notifications import add_notification
from .users import get_user

logger = logging.getLogger(__name__)


def _find_skill(skills: list[dict] | None, name: str) -> dict | None:
    key = skill_key(name)
    for skill in skills or []:
        if skill_key(skill.get("name")) == key:
            return skill
    return None


def default_skill_pair(sender: models.User, recipient: models.User) -> tuple[dict | None, dict | None]:
    """First mutual skills of a pair.

    Returns:
        (sender's skill the recipient wants, recipient's skill the sender wants)
    """
    offered = None
    for wanted in recipient.skills_i_want_to_learn or []:
        offered = _find_skill(sender.skills_i_teach, wanted.get("name"))
        if offered:
            break

    sender_wants = set(skill_names(sender.skills_i_want_to_learn))
    requested = next(
        (s for s in recipient.skills_i_teach or [] if skill_key(s.get("name")) in sender_wants),
        None,
    )
    return offered, requested


async def get_swap_request(session: AsyncSession, swap_request_id: str) -> models.SwapRequest:
    request = await session.get(models.SwapRequest, swap_request_id)
    if request is None:
        raise NotFoundError(f"Swap request {swap_request_id} not found")
    return request


async def create_swap_request(
    session: AsyncSession,
    sender_id: str,
    recipient_id: str,
    *,
    offered_skill_name: str | None = None,
    requested_skill_name: str | None = None,
    message: str = "",
    session_type: models.SessionType = models.SessionType.ONLINE,
    proposed_date: datetime | None = None,
    proposed_time: str | None = None,
) -> models.SwapRequest:
    """Send a swap request from one user to another.

    Args:
        session: Database session
        sender_id: Acting user
        recipient_id: User asked to swap
        offered_skill_name: Skill the sender teaches (defaults to the first mutual one)
        requested_skill_name: Skill the recipient teaches (defaults to the first mutual one)
        message: Free-text note to the recipient
        session_type: Online, Offline or Hybrid
        proposed_date: Optional proposed day
        proposed_time: Optional proposed time of day

    Returns:
        The Pending SwapRequest

    Raises:
        NotFoundError: If either user does not exist
        PermissionDeniedError: If the sender is banned
        ValidationFailedError: On self-requests, unavailable recipients or skills not on offer
        ConflictError: If a Pending request to the same recipient already exists
    """
    if sender_id == recipient_id:
        raise ValidationFailedError("Cannot send a swap request to yourself")

    sender = await get_user(session, sender_id)
    recipient = await get_user(session, recipient_id)
    if sender.is_banned:
        raise PermissionDeniedError(f"User {sender_id} is banned")
    if recipient.is_banned or not recipient.is_active:
        raise ValidationFailedError(f"User {recipient_id} is not available for swaps")

    default_offered, default_requested = default_skill_pair(sender, recipient)

    if offered_skill_name:
        offered = _find_skill(sender.skills_i_teach, offered_skill_name)
        if offered is None:
            raise ValidationFailedError(f"You do not teach '{offered_skill_name}'")
    else:
        offered = default_offered

    if requested_skill_name:
        requested = _find_skill(recipient.skills_i_teach, requested_skill_name)
        if requested is None:
            raise ValidationFailedError(f"{recipient.name} does not teach '{requested_skill_name}'")
    else:
        requested = default_requested

    if offered is None or requested is None:
        raise ValidationFailedError(f"No mutual skills with {recipient.name}")

    pending = await session.execute(
        select(models.SwapRequest.id).where(
            models.SwapRequest.sender_id == sender_id,
            models.SwapRequest.recipient_id == recipient_id,
            models.SwapRequest.status == models.SwapRequestStatus.PENDING.value,
        )
    )
    if pending.first() is not None:
        raise ConflictError(f"A pending request to {recipient.name} already exists")

    request = models.SwapRequest(
        id=models.new_id(),
        sender_id=sender.id,
        sender_name=sender.name,
        recipient_id=recipient.id,
        recipient_name=recipient.name,
        skill_offered=dict(offered),
        skill_requested=dict(requested),
        message=(message or "").strip(),
        session_type=models.SessionType(session_type).value,
        proposed_date=models.naive_utc(proposed_date),
        proposed_time=proposed_time,
        status=models.SwapRequestStatus.PENDING.value,
        created_at=datetime.utcnow(),
    )
    session.add(request)
    add_notification(
        session,
        recipient.id,
        models.NotificationType.SWAP_REQUEST,
        "New swap request",
        f"{sender.name} wants to teach you {offered['name']} in exchange for {requested['name']}",
        related_item_id=request.id,
        related_user_id=sender.id,
    )
    await commit_or_rollback(session, f"creating swap request {sender_id} -> {recipient_id}")

    logger.info(
        f"Swap request {request.id}: {sender_id} offers '{offered['name']}' "
        f"for '{requested['name']}' from {recipient_id}"
    )
    return request


async def get_user_swap_requests(session: AsyncSession, user_id: str) -> list[models.SwapRequest]:
    """Requests the user sent, followed by those the user received."""
    sent = await session.execute(
        select(models.SwapRequest)
        .where(models.SwapRequest.sender_id == user_id)
        .order_by(models.SwapRequest.created_at.desc())
    )
    received = await session.execute(
        select(models.SwapRequest)
        .where(models.SwapRequest.recipient_id == user_id)
        .order_by(models.SwapRequest.created_at.desc())
    )
    return list(sent.scalars().all()) + list(received.scalars().all())


async def get_pending_swap_requests(session: AsyncSession, user_id: str) -> list[models.SwapRequest]:
    """Pending requests waiting for the user's answer."""
    result = await session.execute(
        select(models.SwapRequest)
        .where(
            models.SwapRequest.recipient_id == user_id,
            models.SwapRequest.status == models.SwapRequestStatus.PENDING.value,
        )
        .order_by(models.SwapRequest.created_at.desc())
    )
    return list(result.scalars().all())


async def _transition(
    session: AsyncSession,
    swap_request_id: str,
    actor_id: str,
    target: models.SwapRequestStatus,
    *,
    actor_role: str,
) -> models.SwapRequest:
    request = await get_swap_request(session, swap_request_id)

    allowed_actor = request.recipient_id if actor_role == "recipient" else request.sender_id
    if actor_id != allowed_actor:
        raise PermissionDeniedError(
            f"Only the {actor_role} can mark request {swap_request_id} as {target.value}"
        )
    if request.status != models.SwapRequestStatus.PENDING.value:
        raise ConflictError(
            f"Swap request {swap_request_id} is {request.status}, cannot become {target.value}"
        )

    request.status = target.value
    request.responded_at = datetime.utcnow()
    return request


async def accept_swap_request(session: AsyncSession, swap_request_id: str, actor_id: str) -> models.SwapRequest:
    """Recipient accepts; opens the pair's conversation and notifies the sender."""
    request = await _transition(
        session, swap_request_id, actor_id, models.SwapRequestStatus.ACCEPTED, actor_role="recipient"
    )
    add_notification(
        session,
        request.sender_id,
        models.NotificationType.REQUEST_ACCEPTED,
        "Swap request accepted",
        f"{request.recipient_name} accepted your swap request",
        related_item_id=request.id,
        related_user_id=request.recipient_id,
    )
    await commit_or_rollback(session, f"accepting swap request {swap_request_id}")
    logger.info(f"Swap request {swap_request_id} accepted by {actor_id}")

    await get_or_create_conversation(session, request.sender_id, request.recipient_id, request.id)
    return request


async def reject_swap_request(session: AsyncSession, swap_request_id: str, actor_id: str) -> models.SwapRequest:
    request = await _transition(
        session, swap_request_id, actor_id, models.SwapRequestStatus.REJECTED, actor_role="recipient"
    )
    add_notification(
        session,
        request.sender_id,
        models.NotificationType.REQUEST_REJECTED,
        "Swap request declined",
        f"{request.recipient_name} declined your swap request",
        related_item_id=request.id,
        related_user_id=request.recipient_id,
    )
    await commit_or_rollback(session, f"rejecting swap request {swap_request_id}")
    logger.info(f"Swap request {swap_request_id} rejected by {actor_id}")
    return request


async def cancel_swap_request(session: AsyncSession, swap_request_id: str, actor_id: str) -> models.SwapRequest:
    request = await _transition(
        session, swap_request_id, actor_id, models.SwapRequestStatus.CANCELLED, actor_role="sender"
    )
    await commit_or_rollback(session, f"cancelling swap request {swap_request_id}")
    logger.info(f"Swap request {swap_request_id} cancelled by {actor_id}")
    return request


async def get_swap_for_request(session: AsyncSession, swap_request_id: str) -> models.Swap | None:
    result = await session.execute(
        select(models.Swap).where(models.Swap.swap_request_id == swap_request_id)
    )
    return result.scalar_one_or_none()


async def get_completed_swaps(session: AsyncSession, user_id: str) -> list[models.Swap]:
    """Completed swaps where the user taught or learned."""
    result = await session.execute(
        select(models.Swap)
        .where(
            models.Swap.status == models.SwapStatus.COMPLETED.value,
            or_(models.Swap.teacher_id == user_id, models.Swap.learner_id == user_id),
        )
        .order_by(models.Swap.completed_at.desc())
    )
    return list(result.scalars().all())
