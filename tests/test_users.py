"""Tests for user profiles, onboarding and skill lists."""

import pytest

from skillswap.errors import ConflictError, NotFoundError, ValidationFailedError
from skillswap.pipelines import users


@pytest.mark.asyncio
class TestRegistration:
    async def test_defaults(self, session):
        user = await users.register_user(session, "  Sara@Example.com ", " Sara  B ", user_id="sara")

        assert user.id == "sara"
        assert user.email == "sara@example.com"
        assert user.name == "Sara B"
        assert user.role == "user"
        assert user.prefer_online is True
        assert user.prefer_offline is False
        assert user.skills_i_teach == []
        assert user.is_onboarding_complete is False
        assert user.average_rating == 0.0
        assert user.trust_score == 50.0
        assert user.total_swaps_completed == 0

    async def test_duplicate_email(self, session):
        await users.register_user(session, "sara@example.com", "Sara")
        with pytest.raises(ConflictError):
            await users.register_user(session, "SARA@example.com", "Other Sara")

    async def test_duplicate_id(self, session):
        await users.register_user(session, "a@example.com", "A", user_id="same")
        with pytest.raises(ConflictError):
            await users.register_user(session, "b@example.com", "B", user_id="same")

    async def test_blank_fields(self, session):
        with pytest.raises(ValidationFailedError):
            await users.register_user(session, "  ", "Sara")
        with pytest.raises(ValidationFailedError):
            await users.register_user(session, "sara@example.com", "   ")

    async def test_unknown_user(self, session):
        with pytest.raises(NotFoundError):
            await users.get_user(session, "ghost")


@pytest.mark.asyncio
class TestOnboarding:
    async def test_completes_profile(self, session, make_user):
        user = await make_user(
            "Sara", teach=["Soccer"], learn=["python"],
            prefer_online=False, prefer_offline=True, location="  Casablanca ",
        )

        assert user.is_onboarding_complete is True
        assert user.location == "Casablanca"
        assert user.skills_i_teach[0]["category"] == "Sports"
        assert user.skills_i_want_to_learn[0]["category"] == "Technology"
        assert user.skills_i_teach[0]["level"] == "Intermediate"

    async def test_requires_a_skill(self, session, make_user):
        user = await make_user("Sara", onboard=False)
        with pytest.raises(ValidationFailedError):
            await users.complete_onboarding(
                session, user.id, [], [], prefer_online=True, prefer_offline=False
            )

    async def test_rejects_repeated_skill(self, session, make_user):
        user = await make_user("Sara", onboard=False)
        with pytest.raises(ConflictError):
            await users.complete_onboarding(
                session, user.id, [{"name": "Python"}, {"name": " PYTHON "}], [],
                prefer_online=True, prefer_offline=False,
            )

        user = await users.get_user(session, user.id)
        assert user.skills_i_teach == []
        assert user.is_onboarding_complete is False

    async def test_same_skill_on_both_lists(self, session, make_user):
        user = await make_user("Sara", teach=["Python"], learn=["python"])
        assert len(user.skills_i_teach) == len(user.skills_i_want_to_learn) == 1

    async def test_replaces_lists(self, session, make_user):
        user = await make_user("Sara", teach=["Guitar"], learn=["Spanish"])

        user = await users.complete_onboarding(
            session, user.id, [{"name": "Piano", "level": "Intermediate"}], [], prefer_online=True, prefer_offline=False
        )

        assert [s["name"] for s in user.skills_i_teach] == ["Piano"]
        assert user.skills_i_want_to_learn == []


@pytest.mark.asyncio
class TestProfileAndSkills:
    async def test_update_profile(self, session, make_user):
        user = await make_user("Sara", teach=["Guitar"])

        updated = await users.update_user_profile(session, user.id, bio="Music nerd", location=None)

        assert updated.bio == "Music nerd"

    async def test_update_rejects_unknown_fields(self, session, make_user):
        user = await make_user("Sara", teach=["Guitar"])
        with pytest.raises(ValidationFailedError):
            await users.update_user_profile(session, user.id, average_rating=5.0)

    async def test_add_and_remove_teaching_skill(self, session, make_user):
        user = await make_user("Sara", teach=["Guitar"])

        added = await users.add_teaching_skill(session, user.id, {"name": "Photography", "level": "Advanced"})
        refreshed = await users.get_user(session, user.id)
        assert [s["name"] for s in refreshed.skills_i_teach] == ["Guitar", "Photography"]
        assert added["category"] == "Arts & Design"

        await users.remove_teaching_skill(session, user.id, added["id"])
        refreshed = await users.get_user(session, user.id)
        assert [s["name"] for s in refreshed.skills_i_teach] == ["Guitar"]

    async def test_duplicate_skill_name(self, session, make_user):
        user = await make_user("Sara", learn=["Spanish"])
        with pytest.raises(ConflictError):
            await users.add_learning_skill(session, user.id, {"name": " spanish "})

    async def test_remove_unknown_skill(self, session, make_user):
        user = await make_user("Sara", learn=["Spanish"])
        with pytest.raises(NotFoundError):
            await users.remove_learning_skill(session, user.id, "missing")

    async def test_statistics_are_absolute(self, session, make_user):
        user = await make_user("Sara", teach=["Guitar"])

        await users.update_user_statistics(session, user.id, total_swaps_completed=4)
        updated = await users.update_user_statistics(session, user.id, total_swaps_completed=2)

        assert updated.total_swaps_completed == 2
        with pytest.raises(ValidationFailedError):
            await users.update_user_statistics(session, user.id, email="x@example.com")


@pytest.mark.asyncio
class TestSearch:
    async def test_matches_teach_and_learn_lists(self, session, make_user):
        teacher = await make_user("Teacher", teach=["Electric Guitar"])
        learner = await make_user("Learner", learn=["guitar"])
        await make_user("Other", teach=["Chess"])

        hits = await users.search_users(session, "GUITAR")

        assert [u.id for u in hits] == [teacher.id, learner.id]

    async def test_skips_banned(self, session, make_user):
        banned = await make_user("Banned", teach=["Guitar"])
        banned.is_banned = True
        await session.commit()

        assert await users.search_users(session, "guitar") == []

    async def test_blank_query(self, session, make_user):
        await make_user("Teacher", teach=["Guitar"])
        assert await users.search_users(session, "   ") == []
