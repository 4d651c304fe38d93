"""Rule engine for config-driven compatibility filtering and scoring.

Implements hard and soft rule evaluation with full audit traces. Both sides
of an evaluation are plain feature dicts (see ``pipelines.matching.user_features``):

    {"user_id", "name", "teaches", "wants", "prefer_online",
     "prefer_offline", "location", "average_rating"}

``teaches`` and ``wants`` hold normalized skill names in profile order.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .pipelines.normalization import location_key

logger = logging.getLogger(__name__)


class RuleType(str, Enum):
    """Rule types."""
    # Hard rules (filters)
    MUTUAL_TEACH = "mutual_teach"
    MUTUAL_LEARN = "mutual_learn"
    MODE_COMPATIBLE = "mode_compatible"

    # Soft rules (scoring)
    SKILL_OVERLAP = "skill_overlap"
    SHARED_ONLINE = "shared_online"
    SHARED_OFFLINE = "shared_offline"
    CANDIDATE_RATING = "candidate_rating"


class RuleStatus(str, Enum):
    """Rule evaluation status."""
    PASS = "PASS"
    FAIL = "FAIL"
    SKIP = "SKIP"


@dataclass
class Evidence:
    """Evidence for a rule evaluation."""
    source: str  # e.g., "user_teaches", "candidate_wants"
    text: str


@dataclass
class RuleTrace:
    """Audit trace for a single rule evaluation."""
    rule_id: str
    name: str
    status: RuleStatus
    reason: str
    evidence: list[Evidence] = field(default_factory=list)
    score_delta: float = 0.0

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "status": self.status.value,
            "reason": self.reason,
            "evidence": [{"source": e.source, "text": e.text} for e in self.evidence],
            "score_delta": self.score_delta,
        }


@dataclass
class RuleConfig:
    """Configuration for a single rule."""
    id: str
    name: str
    type: RuleType
    params: dict[str, Any] = field(default_factory=dict)
    weight: float = 1.0


def matched_names(left: list[str], right: list[str]) -> list[str]:
    """Entries of ``left`` (in order, duplicates kept) found in ``right``."""
    wanted = set(right)
    return [name for name in left if name in wanted]


def modes_compatible(user_data: dict[str, Any], candidate_data: dict[str, Any], *, strict: bool = True) -> tuple[bool, str]:
    """Decide whether two users can meet, and say why.

    Both online is always compatible. Both offline needs the same, non-empty
    location. Any other combination is incompatible in strict mode; in
    lenient mode it is compatible whenever the user states a preference.
    """
    if user_data.get("prefer_online") and candidate_data.get("prefer_online"):
        return True, "Both prefer online sessions"

    if user_data.get("prefer_offline") and candidate_data.get("prefer_offline"):
        user_loc = location_key(user_data.get("location"))
        candidate_loc = location_key(candidate_data.get("location"))
        if user_loc and candidate_loc and user_loc == candidate_loc:
            return True, f"Both prefer offline sessions in {candidate_data.get('location')}"
        return False, "Both prefer offline sessions but locations differ or are missing"

    if strict:
        return False, "No shared session mode"

    if user_data.get("prefer_online") or user_data.get("prefer_offline"):
        return True, "Lenient mode: user states a session preference"
    return False, "User states no session preference"


class RuleEngine:
    """Config-driven rule engine for compatibility evaluation.

    Evaluates both hard rules (filters) and soft rules (scoring) with
    full audit trails.
    """

    def __init__(self, rules: list[RuleConfig]):
        """Initialize rule engine.

        Args:
            rules: List of RuleConfig objects
        """
        self.rules = rules
        self.hard_rules = [r for r in rules if self._is_hard_rule(r.type)]
        self.soft_rules = [r for r in rules if not self._is_hard_rule(r.type)]

        logger.debug(
            f"Initialized rule engine: {len(self.hard_rules)} hard, "
            f"{len(self.soft_rules)} soft rules"
        )

    @staticmethod
    def _is_hard_rule(rule_type: RuleType) -> bool:
        """Check if a rule type is a hard constraint."""
        hard_types = {
            RuleType.MUTUAL_TEACH,
            RuleType.MUTUAL_LEARN,
            RuleType.MODE_COMPATIBLE,
        }
        return rule_type in hard_types

    def evaluate_hard_rules(
        self,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
        *,
        stop_on_fail: bool = True,
    ) -> tuple[bool, list[RuleTrace]]:
        """Evaluate hard filtering rules.

        Args:
            candidate_data: Candidate features
            user_data: Features of the user matches are computed for
            stop_on_fail: Stop at the first failing rule (set False to trace every rule)

        Returns:
            Tuple of (passed, rule_traces)
        """
        traces = []
        passed = True

        for rule in self.hard_rules:
            trace = self._evaluate_rule(rule, candidate_data, user_data)
            traces.append(trace)

            if trace.status == RuleStatus.FAIL:
                passed = False
                if stop_on_fail:
                    break

        return passed, traces

    def evaluate_soft_rules(
        self,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
        base_score: float = 0.0,
    ) -> tuple[float, list[RuleTrace]]:
        """Evaluate soft scoring rules.

        Args:
            candidate_data: Candidate features
            user_data: Features of the user matches are computed for
            base_score: Starting score

        Returns:
            Tuple of (adjusted_score, rule_traces)
        """
        traces = []
        total_delta = 0.0

        for rule in self.soft_rules:
            trace = self._evaluate_rule(rule, candidate_data, user_data)
            traces.append(trace)

            if trace.status == RuleStatus.PASS:
                total_delta += trace.score_delta * rule.weight

        final_score = base_score + total_delta
        return final_score, traces

    def _evaluate_rule(
        self,
        rule: RuleConfig,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
    ) -> RuleTrace:
        """Evaluate a single rule."""
        evaluators = {
            RuleType.MUTUAL_TEACH: self._eval_mutual_teach,
            RuleType.MUTUAL_LEARN: self._eval_mutual_learn,
            RuleType.MODE_COMPATIBLE: self._eval_mode_compatible,
            RuleType.SKILL_OVERLAP: self._eval_skill_overlap,
            RuleType.SHARED_ONLINE: self._eval_shared_online,
            RuleType.SHARED_OFFLINE: self._eval_shared_offline,
            RuleType.CANDIDATE_RATING: self._eval_candidate_rating,
        }
        evaluator = evaluators.get(rule.type)
        if evaluator is None:
            logger.warning(f"Unknown rule type: {rule.type}")
            return RuleTrace(
                rule_id=rule.id,
                name=rule.name,
                status=RuleStatus.SKIP,
                reason=f"Unknown rule type: {rule.type}",
            )

        try:
            return evaluator(rule, candidate_data, user_data)
        except Exception as e:
            logger.error(f"Rule evaluation failed for {rule.id}: {e}")
            return RuleTrace(
                rule_id=rule.id,
                name=rule.name,
                status=RuleStatus.SKIP,
                reason=f"Evaluation error: {e}",
            )

    def _eval_mutual_teach(
        self,
        rule: RuleConfig,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
    ) -> RuleTrace:
        """User teaches at least one skill the candidate wants."""
        common = matched_names(user_data.get("teaches", []), candidate_data.get("wants", []))
        if not common:
            return RuleTrace(
                rule_id=rule.id,
                name=rule.name,
                status=RuleStatus.FAIL,
                reason="User teaches nothing the candidate wants to learn",
            )
        return RuleTrace(
            rule_id=rule.id,
            name=rule.name,
            status=RuleStatus.PASS,
            reason=f"User can teach: {', '.join(common)}",
            evidence=[Evidence(source="candidate_wants", text=name) for name in common],
        )

    def _eval_mutual_learn(
        self,
        rule: RuleConfig,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
    ) -> RuleTrace:
        """Candidate teaches at least one skill the user wants."""
        common = matched_names(user_data.get("wants", []), candidate_data.get("teaches", []))
        if not common:
            return RuleTrace(
                rule_id=rule.id,
                name=rule.name,
                status=RuleStatus.FAIL,
                reason="Candidate teaches nothing the user wants to learn",
            )
        return RuleTrace(
            rule_id=rule.id,
            name=rule.name,
            status=RuleStatus.PASS,
            reason=f"User can learn: {', '.join(common)}",
            evidence=[Evidence(source="candidate_teaches", text=name) for name in common],
        )

    def _eval_mode_compatible(
        self,
        rule: RuleConfig,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
    ) -> RuleTrace:
        """Session mode compatibility."""
        ok, reason = modes_compatible(
            user_data, candidate_data, strict=rule.params.get("strict", True)
        )
        return RuleTrace(
            rule_id=rule.id,
            name=rule.name,
            status=RuleStatus.PASS if ok else RuleStatus.FAIL,
            reason=reason,
        )

    def _eval_skill_overlap(
        self,
        rule: RuleConfig,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
    ) -> RuleTrace:
        """One point per skill name matched in either direction."""
        per_skill = rule.params.get("per_skill_bonus", 1.0)
        teach_hits = matched_names(user_data.get("teaches", []), candidate_data.get("wants", []))
        learn_hits = matched_names(user_data.get("wants", []), candidate_data.get("teaches", []))
        count = len(teach_hits) + len(learn_hits)
        return RuleTrace(
            rule_id=rule.id,
            name=rule.name,
            status=RuleStatus.PASS,
            reason=f"{len(teach_hits)} skills to teach, {len(learn_hits)} skills to learn",
            score_delta=count * per_skill,
        )

    def _eval_shared_online(
        self,
        rule: RuleConfig,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
    ) -> RuleTrace:
        """Bonus when both prefer online."""
        if user_data.get("prefer_online") and candidate_data.get("prefer_online"):
            return RuleTrace(
                rule_id=rule.id,
                name=rule.name,
                status=RuleStatus.PASS,
                reason="Both prefer online sessions",
                score_delta=rule.params.get("bonus", 5.0),
            )
        return RuleTrace(
            rule_id=rule.id,
            name=rule.name,
            status=RuleStatus.SKIP,
            reason="Online not shared",
        )

    def _eval_shared_offline(
        self,
        rule: RuleConfig,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
    ) -> RuleTrace:
        """Bonus when both prefer offline."""
        if user_data.get("prefer_offline") and candidate_data.get("prefer_offline"):
            return RuleTrace(
                rule_id=rule.id,
                name=rule.name,
                status=RuleStatus.PASS,
                reason="Both prefer offline sessions",
                score_delta=rule.params.get("bonus", 3.0),
            )
        return RuleTrace(
            rule_id=rule.id,
            name=rule.name,
            status=RuleStatus.SKIP,
            reason="Offline not shared",
        )

    def _eval_candidate_rating(
        self,
        rule: RuleConfig,
        candidate_data: dict[str, Any],
        user_data: dict[str, Any],
    ) -> RuleTrace:
        """Add the candidate's average rating."""
        rating = float(candidate_data.get("average_rating") or 0.0)
        return RuleTrace(
            rule_id=rule.id,
            name=rule.name,
            status=RuleStatus.PASS,
            reason=f"Candidate average rating {rating:.1f}",
            score_delta=rating,
        )
