"""Tests for the matching pipeline."""

import pytest

from skillswap.config import settings
from skillswap.errors import NotFoundError
from skillswap.pipelines import matching, users


@pytest.mark.asyncio
class TestFindMatches:
    async def test_mutual_online_pair_matches(self, session, swap_pair):
        alice, bob = swap_pair

        found = await matching.find_matches(session, alice.id)

        assert [m.user.id for m in found] == [bob.id]
        match = found[0]
        # 1 teachable + 1 learnable + online bonus + rating 0
        assert match.score == pytest.approx(1 + 1 + 5.0)
        assert [s["name"] for s in match.common_teaching_skills] == ["Guitar"]
        assert [s["name"] for s in match.skills_can_learn] == ["Spanish"]
        assert {t["rule_id"] for t in match.rule_trace} >= {"mutual_teach", "mutual_learn", "mode_compatible"}

    async def test_disjoint_skill_sets_never_match(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        await make_user("Carol", teach=["Chess"], learn=["Yoga"])

        assert await matching.find_matches(session, alice.id) == []

    async def test_one_sided_interest_is_not_a_match(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        await make_user("Dan", teach=["French"], learn=["Guitar"])

        assert await matching.find_matches(session, alice.id) == []

    async def test_skill_names_compare_case_insensitively(self, session, make_user):
        alice = await make_user("Alice", teach=["guitar"], learn=["SPANISH"])
        bob = await make_user("Bob", teach=[" Spanish "], learn=["Guitar"])

        found = await matching.find_matches(session, alice.id)

        assert [m.user.id for m in found] == [bob.id]

    async def test_sorted_by_score_with_rating(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar", "Piano"], learn=["Spanish"])
        low = await make_user("Low", teach=["Spanish"], learn=["Guitar"])
        high = await make_user("High", teach=["Spanish"], learn=["Guitar", "Piano"])
        rated = await make_user("Rated", teach=["Spanish"], learn=["Guitar"])
        await users.update_user_statistics(session, rated.id, average_rating=4.8, total_reviews=3)

        found = await matching.find_matches(session, alice.id)

        assert [m.user.id for m in found] == [rated.id, high.id, low.id]
        assert found[0].score == pytest.approx(2 + 5.0 + 4.8)

    async def test_ties_keep_store_order(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        first = await make_user("First", teach=["Spanish"], learn=["Guitar"])
        second = await make_user("Second", teach=["Spanish"], learn=["Guitar"])

        found = await matching.find_matches(session, alice.id)

        assert [m.user.id for m in found] == [first.id, second.id]

    async def test_offline_requires_same_location(self, session, make_user):
        alice = await make_user(
            "Alice", teach=["Guitar"], learn=["Spanish"],
            prefer_online=False, prefer_offline=True, location="Rabat",
        )
        same = await make_user(
            "Same", teach=["Spanish"], learn=["Guitar"],
            prefer_online=False, prefer_offline=True, location="rabat",
        )
        await make_user(
            "Far", teach=["Spanish"], learn=["Guitar"],
            prefer_online=False, prefer_offline=True, location="Tangier",
        )

        found = await matching.find_matches(session, alice.id)

        assert [m.user.id for m in found] == [same.id]
        assert found[0].score == pytest.approx(2 + 3.0)

    async def test_mixed_modes_excluded_when_strict(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        await make_user(
            "Offline", teach=["Spanish"], learn=["Guitar"],
            prefer_online=False, prefer_offline=True, location="Rabat",
        )

        assert await matching.find_matches(session, alice.id) == []

    async def test_mixed_modes_lenient(self, session, make_user, monkeypatch):
        monkeypatch.setattr(settings.matching, "strict_mode_compatibility", False)
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        offline = await make_user(
            "Offline", teach=["Spanish"], learn=["Guitar"],
            prefer_online=False, prefer_offline=True, location="Rabat",
        )

        found = await matching.find_matches(session, alice.id)

        assert [m.user.id for m in found] == [offline.id]
        assert found[0].score == pytest.approx(2)

    async def test_banned_and_unonboarded_excluded(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        banned = await make_user("Banned", teach=["Spanish"], learn=["Guitar"])
        banned.is_banned = True
        await session.commit()
        await make_user("Fresh", onboard=False)

        assert await matching.find_matches(session, alice.id) == []

    async def test_unknown_user(self, session):
        with pytest.raises(NotFoundError):
            await matching.find_matches(session, "ghost")


@pytest.mark.asyncio
class TestRecommendationsAndSuggestions:
    async def test_recommended_is_prefix_of_matches(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        for i in range(4):
            await make_user(f"Peer{i}", teach=["Spanish"], learn=["Guitar"])

        all_matches = await matching.find_matches(session, alice.id)
        recommended = await matching.get_recommended_users(session, alice.id, limit=2)

        assert [m.user.id for m in recommended] == [m.user.id for m in all_matches[:2]]
        assert await matching.get_recommended_users(session, alice.id, limit=0) == []

    async def test_suggested_is_one_sided_and_rating_ordered(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        teacher_low = await make_user("TeacherLow", teach=["Spanish"], learn=["Chess"])
        teacher_high = await make_user("TeacherHigh", teach=["spanish"], learn=[])
        await make_user("Nobody", teach=["Chess"], learn=["Guitar"])
        await users.update_user_statistics(session, teacher_high.id, average_rating=4.9)

        suggested = await matching.get_suggested_users(session, alice.id)

        assert [u.id for u in suggested] == [teacher_high.id, teacher_low.id]
        assert await matching.get_suggested_users(session, alice.id, limit=0) == []

    async def test_explain_non_match(self, session, make_user):
        alice = await make_user("Alice", teach=["Guitar"], learn=["Spanish"])
        carol = await make_user("Carol", teach=["Chess"], learn=["Guitar"])

        explanation = await matching.explain_match(session, alice.id, carol.id)

        assert explanation.is_match is False
        statuses = {t["rule_id"]: t["status"] for t in explanation.rule_trace}
        assert statuses["mutual_teach"] == "PASS"
        assert statuses["mutual_learn"] == "FAIL"
        assert statuses["mode_compatible"] == "PASS"
        assert [s["name"] for s in explanation.common_teaching_skills] == ["Guitar"]
        assert explanation.skills_can_learn == []
