"""User profiles: registration, onboarding, skill lists, search and statistics."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..db import commit_or_rollback
from ..errors import ConflictError, NotFoundError, ValidationFailedError
from ..skills import get_catalog
from .normalization import clean_display_name, skill_key

logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("name", "bio", "photo_url", "location", "prefer_online", "prefer_offline")
STATISTIC_FIELDS = (
    "total_swaps_completed",
    "total_skills_taught",
    "total_skills_learned",
    "average_rating",
    "total_reviews",
    "trust_score",
)
TEACH_LIST = "skills_i_teach"
LEARN_LIST = "skills_i_want_to_learn"


async def get_user(session: AsyncSession, user_id: str) -> models.User:
    """Load a user or raise NotFoundError."""
    user = await session.get(models.User, user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return user


get_user_profile = get_user


async def register_user(
    session: AsyncSession,
    email: str,
    name: str,
    *,
    user_id: str | None = None,
    photo_url: str | None = None,
) -> models.User:
    """Create a profile for an identity issued by the external auth provider.

    Args:
        session: Database session
        email: Contact email, unique across users
        name: Display name
        user_id: Identifier issued by the identity collaborator (generated if omitted)
        photo_url: Optional avatar

    Returns:
        The new User with default preferences and reputation

    Raises:
        ConflictError: If the email or id is already registered
        ValidationFailedError: If email or name is blank
    """
    email = (email or "").strip().lower()
    name = clean_display_name(name)
    if not email or not name:
        raise ValidationFailedError("Email and name are required")

    existing = await session.execute(
        select(models.User.id).where(
            or_(models.User.email == email, models.User.id == (user_id or ""))
        )
    )
    if existing.first() is not None:
        raise ConflictError(f"User with email {email} or id {user_id} already exists")

    now = datetime.utcnow()
    user = models.User(
        id=user_id or models.new_id(),
        email=email,
        name=name,
        photo_url=photo_url,
        role=models.UserRole.USER.value,
        prefer_online=True,
        prefer_offline=False,
        skills_i_teach=[],
        skills_i_want_to_learn=[],
        is_onboarding_complete=False,
        is_verified=True,
        average_rating=0.0,
        total_reviews=0,
        trust_score=50.0,
        total_swaps_completed=0,
        total_skills_taught=0,
        total_skills_learned=0,
        created_at=now,
        updated_at=now,
        is_active=True,
        is_banned=False,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        raise ConflictError(f"User with email {email} already exists") from e

    logger.info(f"Registered user {user.id} ({email})")
    return user


async def update_user_profile(session: AsyncSession, user_id: str, **updates: Any) -> models.User:
    """Apply profile edits. ``None`` values are ignored."""
    unknown = set(updates) - set(PROFILE_FIELDS)
    if unknown:
        raise ValidationFailedError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    user = await get_user(session, user_id)
    for field_name, value in updates.items():
        if value is None:
            continue
        if field_name == "name":
            value = clean_display_name(value)
            if not value:
                raise ValidationFailedError("Name cannot be blank")
        setattr(user, field_name, value)
    user.updated_at = datetime.utcnow()

    await commit_or_rollback(session, f"updating profile of {user_id}")
    logger.info(f"Updated profile of user {user_id}")
    return user


async def record_login(session: AsyncSession, user_id: str) -> models.User:
    user = await get_user(session, user_id)
    user.last_login_at = user.updated_at = datetime.utcnow()
    await commit_or_rollback(session, f"recording login of {user_id}")
    return user


def _build_skills(entries: list[dict]) -> list[dict]:
    catalog = get_catalog()
    skills = []
    for entry in entries:
        name = clean_display_name(entry.get("name"))
        if not name:
            raise ValidationFailedError("Skill name is required")
        if any(skill_key(s["name"]) == skill_key(name) for s in skills):
            raise ConflictError(f"Skill '{name}' is listed twice")
        skills.append(
            catalog.build_skill(
                name,
                level=entry.get("level") or models.SkillLevel.BEGINNER,
                category=entry.get("category"),
                years_of_experience=entry.get("years_of_experience"),
                description=entry.get("description"),
            )
        )
    return skills


async def complete_onboarding(
    session: AsyncSession,
    user_id: str,
    teach: list[dict],
    learn: list[dict],
    *,
    prefer_online: bool,
    prefer_offline: bool,
    location: str | None = None,
) -> models.User:
    """Replace both skill lists, set preferences and mark onboarding complete.

    Raises:
        ValidationFailedError: If both skill lists are empty
        ConflictError: If a skill name repeats within one list
    """
    if not teach and not learn:
        raise ValidationFailedError("Add at least one skill to teach or learn")

    user = await get_user(session, user_id)
    user.skills_i_teach = _build_skills(teach)
    user.skills_i_want_to_learn = _build_skills(learn)
    user.prefer_online = prefer_online
    user.prefer_offline = prefer_offline
    user.location = clean_display_name(location)
    user.is_onboarding_complete = True
    user.updated_at = datetime.utcnow()

    await commit_or_rollback(session, f"completing onboarding of {user_id}")
    logger.info(
        f"User {user_id} completed onboarding: "
        f"{len(user.skills_i_teach)} to teach, {len(user.skills_i_want_to_learn)} to learn"
    )
    return user


async def _add_skill(session: AsyncSession, user_id: str, list_name: str, entry: dict) -> dict:
    user = await get_user(session, user_id)
    skill = _build_skills([entry])[0]

    current = list(getattr(user, list_name) or [])
    if any(skill_key(s.get("name")) == skill_key(skill["name"]) for s in current):
        raise ConflictError(f"Skill '{skill['name']}' is already on the list")

    # Reassign so the JSON column registers the change
    setattr(user, list_name, current + [skill])
    user.updated_at = datetime.utcnow()
    await commit_or_rollback(session, f"adding skill to {list_name} of {user_id}")
    logger.info(f"Added skill '{skill['name']}' ({skill['category']}) to {list_name} of {user_id}")
    return skill


async def _remove_skill(session: AsyncSession, user_id: str, list_name: str, skill_id: str) -> None:
    user = await get_user(session, user_id)
    current = list(getattr(user, list_name) or [])
    remaining = [s for s in current if s.get("id") != skill_id]
    if len(remaining) == len(current):
        raise NotFoundError(f"Skill {skill_id} not found")

    setattr(user, list_name, remaining)
    user.updated_at = datetime.utcnow()
    await commit_or_rollback(session, f"removing skill from {list_name} of {user_id}")
    logger.info(f"Removed skill {skill_id} from {list_name} of {user_id}")


async def add_teaching_skill(session: AsyncSession, user_id: str, skill: dict) -> dict:
    return await _add_skill(session, user_id, TEACH_LIST, skill)


async def remove_teaching_skill(session: AsyncSession, user_id: str, skill_id: str) -> None:
    await _remove_skill(session, user_id, TEACH_LIST, skill_id)


async def add_learning_skill(session: AsyncSession, user_id: str, skill: dict) -> dict:
    return await _add_skill(session, user_id, LEARN_LIST, skill)


async def remove_learning_skill(session: AsyncSession, user_id: str, skill_id: str) -> None:
    await _remove_skill(session, user_id, LEARN_LIST, skill_id)


async def get_all_active_users(session: AsyncSession) -> list[models.User]:
    """Active, non-banned users in store order."""
    result = await session.execute(
        select(models.User)
        .where(models.User.is_active.is_(True), models.User.is_banned.is_(False))
        .order_by(models.User.created_at, models.User.id)
    )
    return list(result.scalars().all())


async def search_users(session: AsyncSession, skill_name: str) -> list[models.User]:
    """Active, non-banned users teaching or wanting a skill matching the query.

    A skill matches when its name contains the query case-insensitively,
    or when fuzzy search is enabled and the names are close enough.
    """
    if not skill_key(skill_name):
        return []

    catalog = get_catalog()
    users = await get_all_active_users(session)
    hits = [
        user
        for user in users
        if any(
            catalog.names_match(skill_name, s.get("name", ""))
            for s in (user.skills_i_teach or []) + (user.skills_i_want_to_learn or [])
        )
    ]
    logger.debug(f"Search '{skill_name}' matched {len(hits)} of {len(users)} users")
    return hits


async def update_user_statistics(session: AsyncSession, user_id: str, **updates: Any) -> models.User:
    """Overwrite reputation and activity counters."""
    unknown = set(updates) - set(STATISTIC_FIELDS)
    if unknown:
        raise ValidationFailedError(f"Unknown statistics: {', '.join(sorted(unknown))}")

    user = await get_user(session, user_id)
    for field_name, value in updates.items():
        setattr(user, field_name, value)
    user.updated_at = datetime.utcnow()
    await commit_or_rollback(session, f"updating statistics of {user_id}")
    return user
