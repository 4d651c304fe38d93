"""Tests for the compatibility rule engine."""

import pytest

from skillswap.rules import (
    RuleConfig,
    RuleEngine,
    RuleStatus,
    RuleType,
    matched_names,
    modes_compatible,
)


def features(teaches=(), wants=(), online=True, offline=False, location=None, rating=0.0):
    return {
        "user_id": "x",
        "name": "X",
        "teaches": list(teaches),
        "wants": list(wants),
        "prefer_online": online,
        "prefer_offline": offline,
        "location": location,
        "average_rating": rating,
    }


def default_engine(strict: bool = True) -> RuleEngine:
    return RuleEngine([
        RuleConfig(id="mutual_teach", name="teach", type=RuleType.MUTUAL_TEACH),
        RuleConfig(id="mutual_learn", name="learn", type=RuleType.MUTUAL_LEARN),
        RuleConfig(id="mode", name="mode", type=RuleType.MODE_COMPATIBLE, params={"strict": strict}),
        RuleConfig(id="overlap", name="overlap", type=RuleType.SKILL_OVERLAP),
        RuleConfig(id="online", name="online", type=RuleType.SHARED_ONLINE, params={"bonus": 5.0}),
        RuleConfig(id="offline", name="offline", type=RuleType.SHARED_OFFLINE, params={"bonus": 3.0}),
        RuleConfig(id="rating", name="rating", type=RuleType.CANDIDATE_RATING),
    ])


class TestMatchedNames:
    def test_keeps_order_and_duplicates(self):
        assert matched_names(["a", "b", "a"], ["a"]) == ["a", "a"]

    def test_no_overlap(self):
        assert matched_names(["a"], ["b"]) == []


class TestModesCompatible:
    def test_both_online(self):
        ok, _ = modes_compatible(features(online=True), features(online=True))
        assert ok

    def test_both_offline_same_city_case_insensitive(self):
        ok, _ = modes_compatible(
            features(online=False, offline=True, location="Casablanca"),
            features(online=False, offline=True, location=" casablanca "),
        )
        assert ok

    def test_both_offline_different_city(self):
        ok, _ = modes_compatible(
            features(online=False, offline=True, location="Rabat"),
            features(online=False, offline=True, location="Fes"),
        )
        assert not ok

    def test_both_offline_missing_location(self):
        ok, _ = modes_compatible(
            features(online=False, offline=True, location=None),
            features(online=False, offline=True, location=None),
        )
        assert not ok

    def test_mixed_modes_strict(self):
        ok, _ = modes_compatible(
            features(online=True, offline=False),
            features(online=False, offline=True, location="Rabat"),
        )
        assert not ok

    def test_mixed_modes_lenient_falls_back_to_user_preference(self):
        ok, _ = modes_compatible(
            features(online=True, offline=False),
            features(online=False, offline=True, location="Rabat"),
            strict=False,
        )
        assert ok

    def test_lenient_without_any_preference(self):
        ok, _ = modes_compatible(
            features(online=False, offline=False),
            features(online=False, offline=True),
            strict=False,
        )
        assert not ok


class TestHardRules:
    def test_mutual_pair_passes(self):
        engine = default_engine()
        user = features(teaches=["guitar"], wants=["spanish"])
        candidate = features(teaches=["spanish"], wants=["guitar"])

        passed, traces = engine.evaluate_hard_rules(candidate, user)

        assert passed
        assert [t.status for t in traces] == [RuleStatus.PASS] * 3

    def test_one_sided_fails_and_stops(self):
        engine = default_engine()
        user = features(teaches=["guitar"], wants=["spanish"])
        candidate = features(teaches=["french"], wants=["guitar"])

        passed, traces = engine.evaluate_hard_rules(candidate, user)

        assert not passed
        assert traces[-1].rule_id == "mutual_learn"
        assert traces[-1].status == RuleStatus.FAIL
        assert len(traces) == 2

    def test_trace_every_rule_when_asked(self):
        engine = default_engine()
        passed, traces = engine.evaluate_hard_rules(
            features(teaches=["x"], wants=["y"]),
            features(teaches=["a"], wants=["b"]),
            stop_on_fail=False,
        )
        assert not passed
        assert len(traces) == 3

    def test_disjoint_skill_sets_never_match(self):
        engine = default_engine(strict=False)
        user = features(teaches=["guitar", "piano"], wants=["spanish"])
        candidate = features(teaches=["chess"], wants=["yoga"])
        passed, _ = engine.evaluate_hard_rules(candidate, user)
        assert not passed


class TestSoftRules:
    def test_score_components(self):
        engine = default_engine()
        user = features(teaches=["guitar", "python"], wants=["spanish"], online=True)
        candidate = features(
            teaches=["spanish"], wants=["guitar", "python"], online=True, rating=4.5
        )

        score, traces = engine.evaluate_soft_rules(candidate, user)

        # 2 teachable + 1 learnable + online bonus + rating
        assert score == pytest.approx(3 + 5.0 + 4.5)
        by_id = {t.rule_id: t for t in traces}
        assert by_id["offline"].status == RuleStatus.SKIP
        assert by_id["overlap"].score_delta == 3

    def test_offline_bonus(self):
        engine = default_engine()
        user = features(teaches=["a"], wants=["b"], online=False, offline=True, location="Rabat")
        candidate = features(teaches=["b"], wants=["a"], online=False, offline=True, location="Rabat")

        score, _ = engine.evaluate_soft_rules(candidate, user)

        assert score == pytest.approx(2 + 3.0)

    def test_trace_serializes(self):
        engine = default_engine()
        _, traces = engine.evaluate_hard_rules(
            features(teaches=["b"], wants=["a"]), features(teaches=["a"], wants=["b"])
        )
        as_dict = traces[0].to_dict()
        assert as_dict["status"] == "PASS"
        assert as_dict["evidence"] == [{"source": "candidate_wants", "text": "a"}]
