"""Ratings after completed sessions and the reputation derived from them."""
from __future__ import annotations

import logging
import math
from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..config import settings
from ..db import commit_or_rollback
from ..errors import ConflictError, PermissionDeniedError, SkillSwapError, ValidationFailedError
from .normalization import normalize_review
from .notifications import add_notification
from .sessions import get_skill_session
from .users import get_user

logger = logging.getLogger(__name__)


class ReputationUpdateError(SkillSwapError):
    """Raised when a rating was stored but the ratee's reputation could not be refreshed."""
    pass


def round_half_up(value: float, digits: int = 1) -> float:
    """Round halves away from zero (4.25 -> 4.3) for non-negative values."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def calculate_average_rating(ratings: Iterable[models.Rating]) -> float:
    """Mean rating to one decimal, 0 when there are none."""
    scores = [r.rating for r in ratings]
    if not scores:
        return 0.0
    return round_half_up(sum(scores) / len(scores))


def trust_score_for(mean: float) -> float:
    cfg = settings.ratings
    return min(cfg.max_trust_score, cfg.base_trust_score + mean * cfg.trust_per_star)


async def create_rating(
    session: AsyncSession,
    rater_id: str,
    session_id: str,
    rating: int,
    review: str,
    category: models.RatingCategory = models.RatingCategory.OVERALL,
) -> models.Rating:
    """Rate the other participant of a completed session.

    The rating row is committed first; the ratee's reputation is then
    recomputed from all their ratings in a second write.

    Args:
        session: Database session
        rater_id: Acting user
        session_id: Completed session both users took part in
        rating: Stars in the configured range
        review: Review text, length checked after trimming
        category: Knowledge, Communication, Reliability or Overall

    Returns:
        The stored Rating

    Raises:
        NotFoundError: If the session or a participant does not exist
        PermissionDeniedError: If the rater did not take part in the session
        ConflictError: If the session is not Completed or was already rated by this user
        ValidationFailedError: If the score or review is out of range
        ReputationUpdateError: If the reputation refresh fails after the rating was stored
    """
    cfg = settings.ratings
    if not isinstance(rating, int) or isinstance(rating, bool) or not cfg.min_score <= rating <= cfg.max_score:
        raise ValidationFailedError(f"Rating must be between {cfg.min_score} and {cfg.max_score}")

    text = normalize_review(review)
    if not cfg.review_min_length <= len(text) <= cfg.review_max_length:
        raise ValidationFailedError(
            f"Review must be {cfg.review_min_length}-{cfg.review_max_length} characters"
        )

    skill_session = await get_skill_session(session, session_id)
    if rater_id not in skill_session.participant_ids:
        raise PermissionDeniedError(f"User {rater_id} did not take part in session {session_id}")
    if skill_session.status != models.SessionStatus.COMPLETED.value:
        raise ConflictError(f"Session {session_id} is {skill_session.status}, not Completed")

    ratee_id = (
        skill_session.guest_id if rater_id == skill_session.host_id else skill_session.host_id
    )
    rater = await get_user(session, rater_id)
    ratee = await get_user(session, ratee_id)

    existing = await session.execute(
        select(models.Rating.id).where(
            models.Rating.rated_by_id == rater_id,
            models.Rating.session_id == session_id,
        )
    )
    if existing.first() is not None:
        raise ConflictError(f"User {rater_id} already rated session {session_id}")

    record = models.Rating(
        id=models.new_id(),
        rated_by_id=rater.id,
        rated_by_name=rater.name,
        rated_user_id=ratee.id,
        rated_user_name=ratee.name,
        session_id=skill_session.id,
        rating=rating,
        review=text,
        category=models.RatingCategory(category).value,
        created_at=datetime.utcnow(),
    )
    session.add(record)
    add_notification(
        session,
        ratee.id,
        models.NotificationType.RATING_RECEIVED,
        "New rating",
        f"{rater.name} rated you {rating}/{cfg.max_score}",
        related_item_id=record.id,
        related_user_id=rater.id,
    )
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"User {rater_id} already rated session {session_id}") from e
    logger.info(f"User {rater_id} rated {ratee_id} {rating}/{cfg.max_score} for session {session_id}")

    try:
        await update_user_reputation(session, ratee_id)
    except Exception as e:
        logger.error(f"Rating {record.id} stored but reputation update for {ratee_id} failed: {e}")
        raise ReputationUpdateError(f"Reputation update failed for {ratee_id}: {e}") from e

    return record


async def update_user_reputation(session: AsyncSession, user_id: str) -> models.User:
    """Recompute average rating, review count and trust score from all received ratings."""
    user = await get_user(session, user_id)
    ratings = await get_user_ratings(session, user_id)
    if not ratings:
        return user

    mean = sum(r.rating for r in ratings) / len(ratings)
    user.average_rating = round_half_up(mean)
    user.total_reviews = len(ratings)
    user.trust_score = trust_score_for(mean)
    user.updated_at = datetime.utcnow()
    await commit_or_rollback(session, f"updating reputation of {user_id}")

    logger.info(
        f"Reputation of {user_id}: avg={user.average_rating} "
        f"reviews={user.total_reviews} trust={user.trust_score:.1f}"
    )
    return user


async def get_user_ratings(session: AsyncSession, user_id: str) -> list[models.Rating]:
    """Ratings the user received, newest first."""
    result = await session.execute(
        select(models.Rating)
        .where(models.Rating.rated_user_id == user_id)
        .order_by(models.Rating.created_at.desc())
    )
    return list(result.scalars().all())


async def get_ratings_by_user(session: AsyncSession, user_id: str) -> list[models.Rating]:
    """Ratings the user gave, newest first."""
    result = await session.execute(
        select(models.Rating)
        .where(models.Rating.rated_by_id == user_id)
        .order_by(models.Rating.created_at.desc())
    )
    return list(result.scalars().all())
