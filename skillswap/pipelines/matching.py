"""Matching pipeline: User -> compatible counterparts with rule-based scoring.

Workflow:
1. Load the user's features
2. Load candidates (active, not banned, onboarded, not the user)
3. Apply hard rules (mutual teach, mutual learn, mode compatibility)
4. Apply soft rules (skill overlap, shared mode bonuses, candidate rating)
5. Sort by score descending, keeping store order for ties
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .. import models
from ..config import settings
from ..rules import RuleConfig, RuleEngine, RuleType
from .normalization import skill_key, skill_names
from .users import get_user

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Single compatible counterpart."""
    user: models.User
    score: float
    common_teaching_skills: list[dict]  # candidate's wanted skills the user teaches
    skills_can_learn: list[dict]  # candidate's taught skills the user wants
    rule_trace: list[dict] = field(default_factory=list)


@dataclass
class MatchExplanation:
    """Full evaluation of one pair, whether or not it matches."""
    user_id: str
    other_id: str
    is_match: bool
    score: float
    common_teaching_skills: list[dict]
    skills_can_learn: list[dict]
    rule_trace: list[dict]
    rules_version: str
    computed_at: datetime


def user_features(user: models.User) -> dict:
    """Feature dict consumed by the rule engine."""
    return {
        "user_id": user.id,
        "name": user.name,
        "teaches": skill_names(user.skills_i_teach),
        "wants": skill_names(user.skills_i_want_to_learn),
        "prefer_online": bool(user.prefer_online),
        "prefer_offline": bool(user.prefer_offline),
        "location": user.location,
        "average_rating": user.average_rating or 0.0,
    }


def load_rules_config(version: str | None = None) -> list[RuleConfig]:
    """Build the rule set from matching settings.

    Args:
        version: Rules version label, for logging

    Returns:
        List of RuleConfig objects
    """
    version = version or settings.matching.rules_version
    rules = [
        # Hard rules (filters)
        RuleConfig(
            id="mutual_teach",
            name="User teaches a skill the candidate wants",
            type=RuleType.MUTUAL_TEACH,
        ),
        RuleConfig(
            id="mutual_learn",
            name="Candidate teaches a skill the user wants",
            type=RuleType.MUTUAL_LEARN,
        ),
        RuleConfig(
            id="mode_compatible",
            name="Session mode compatibility",
            type=RuleType.MODE_COMPATIBLE,
            params={"strict": settings.matching.strict_mode_compatibility},
        ),
        # Soft rules (scoring)
        RuleConfig(
            id="skill_overlap",
            name="Matched skills",
            type=RuleType.SKILL_OVERLAP,
            params={"per_skill_bonus": 1.0},
        ),
        RuleConfig(
            id="shared_online",
            name="Both prefer online",
            type=RuleType.SHARED_ONLINE,
            params={"bonus": settings.matching.shared_online_bonus},
        ),
        RuleConfig(
            id="shared_offline",
            name="Both prefer offline",
            type=RuleType.SHARED_OFFLINE,
            params={"bonus": settings.matching.shared_offline_bonus},
        ),
        RuleConfig(
            id="candidate_rating",
            name="Candidate reputation",
            type=RuleType.CANDIDATE_RATING,
        ),
    ]
    logger.debug(f"Loaded {len(rules)} rules (version: {version})")
    return rules


async def load_candidates(session: AsyncSession, user_id: str) -> list[models.User]:
    """Every other active, non-banned user who finished onboarding, in store order."""
    result = await session.execute(
        select(models.User)
        .where(
            models.User.id != user_id,
            models.User.is_active.is_(True),
            models.User.is_banned.is_(False),
            models.User.is_onboarding_complete.is_(True),
        )
        .order_by(models.User.created_at, models.User.id)
    )
    return list(result.scalars().all())


def mutual_skills(user: models.User, other: models.User) -> tuple[list[dict], list[dict]]:
    """Skills the two can exchange.

    Returns:
        (other's wanted skills the user teaches, other's taught skills the user wants)
    """
    user_teaches = set(skill_names(user.skills_i_teach))
    user_wants = set(skill_names(user.skills_i_want_to_learn))
    common_teaching = [
        s for s in other.skills_i_want_to_learn or [] if skill_key(s.get("name")) in user_teaches
    ]
    can_learn = [
        s for s in other.skills_i_teach or [] if skill_key(s.get("name")) in user_wants
    ]
    return common_teaching, can_learn


async def find_matches(session: AsyncSession, user_id: str) -> list[MatchResult]:
    """Find every compatible counterpart for a user, best first.

    Args:
        session: Database session
        user_id: User to match

    Returns:
        MatchResults sorted by score descending

    Raises:
        NotFoundError: If the user does not exist
    """
    user = await get_user(session, user_id)
    user_data = user_features(user)
    rule_engine = RuleEngine(load_rules_config())

    candidates = await load_candidates(session, user_id)
    logger.info(f"Evaluating {len(candidates)} candidates for user {user_id}")

    matches = []
    for candidate in candidates:
        candidate_data = user_features(candidate)

        passed_hard, hard_traces = rule_engine.evaluate_hard_rules(candidate_data, user_data)
        if not passed_hard:
            logger.debug(f"Candidate {candidate.id} filtered by hard rules")
            continue

        score, soft_traces = rule_engine.evaluate_soft_rules(candidate_data, user_data)
        common_teaching, can_learn = mutual_skills(user, candidate)
        matches.append(
            MatchResult(
                user=candidate,
                score=score,
                common_teaching_skills=common_teaching,
                skills_can_learn=can_learn,
                rule_trace=[t.to_dict() for t in hard_traces + soft_traces],
            )
        )

    # Stable sort keeps store order among equal scores
    matches.sort(key=lambda m: m.score, reverse=True)
    logger.info(f"Found {len(matches)} matches for user {user_id}")
    return matches


async def get_recommended_users(
    session: AsyncSession,
    user_id: str,
    limit: int | None = None,
) -> list[MatchResult]:
    """Top matches for the dashboard."""
    if limit is None:
        limit = settings.matching.recommended_limit
    matches = await find_matches(session, user_id)
    return matches[:limit]


async def get_suggested_users(
    session: AsyncSession,
    user_id: str,
    limit: int | None = None,
) -> list[models.User]:
    """Users who teach something the user wants, highest rated first.

    One-sided: the candidate need not want anything the user teaches.
    """
    if limit is None:
        limit = settings.matching.suggested_limit
    user = await get_user(session, user_id)
    wanted = set(skill_names(user.skills_i_want_to_learn))
    if not wanted:
        return []

    candidates = await load_candidates(session, user_id)
    suggested = [
        c for c in candidates if wanted.intersection(skill_names(c.skills_i_teach))
    ]
    suggested.sort(key=lambda c: c.average_rating or 0.0, reverse=True)
    return suggested[:limit]


async def explain_match(session: AsyncSession, user_id: str, other_id: str) -> MatchExplanation:
    """Evaluate every rule for one pair and report the outcome.

    Raises:
        NotFoundError: If either user does not exist
    """
    user = await get_user(session, user_id)
    other = await get_user(session, other_id)
    user_data = user_features(user)
    other_data = user_features(other)

    rules_version = settings.matching.rules_version
    rule_engine = RuleEngine(load_rules_config(rules_version))
    passed_hard, hard_traces = rule_engine.evaluate_hard_rules(
        other_data, user_data, stop_on_fail=False
    )
    score, soft_traces = rule_engine.evaluate_soft_rules(other_data, user_data)
    common_teaching, can_learn = mutual_skills(user, other)

    return MatchExplanation(
        user_id=user_id,
        other_id=other_id,
        is_match=passed_hard,
        score=score,
        common_teaching_skills=common_teaching,
        skills_can_learn=can_learn,
        rule_trace=[t.to_dict() for t in hard_traces + soft_traces],
        rules_version=rules_version,
        computed_at=datetime.utcnow(),
    )
