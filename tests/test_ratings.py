"""Tests for ratings and reputation."""

from datetime import datetime
from types import SimpleNamespace

import pytest
import pytest_asyncio

from skillswap import models
from skillswap.errors import ConflictError, PermissionDeniedError, ValidationFailedError
from skillswap.pipelines import notifications, ratings, sessions

REVIEW = "Patient and clear teacher"


@pytest_asyncio.fixture
async def completed_session(session, swap_pair, accepted_request):
    alice, _ = swap_pair
    scheduled = await sessions.schedule_session(
        session, accepted_request.id, alice.id, datetime(2030, 5, 1, 18, 0)
    )
    return await sessions.complete_session(session, scheduled.id, alice.id)


class TestReputationMath:
    def test_round_half_up(self):
        assert ratings.round_half_up(4.25) == 4.3
        assert ratings.round_half_up(4.24) == 4.2
        assert ratings.round_half_up(4.5) == 4.5
        assert ratings.round_half_up(11 / 3) == 3.7

    def test_average_of_nothing(self):
        assert ratings.calculate_average_rating([]) == 0.0

    def test_average(self):
        given = [SimpleNamespace(rating=r) for r in (5, 4, 4, 4)]
        assert ratings.calculate_average_rating(given) == 4.3

    def test_trust_score_is_capped(self):
        assert ratings.trust_score_for(0.0) == 50.0
        assert ratings.trust_score_for(3.0) == 80.0
        assert ratings.trust_score_for(5.0) == 100.0


@pytest.mark.asyncio
class TestCreateRating:
    async def test_rates_other_participant_and_updates_reputation(
        self, session, swap_pair, completed_session
    ):
        alice, bob = swap_pair

        record = await ratings.create_rating(session, bob.id, completed_session.id, 4, f"  {REVIEW}  ")

        assert record.rated_user_id == alice.id
        assert record.rated_by_id == bob.id
        assert record.review == REVIEW
        assert record.category == models.RatingCategory.OVERALL.value
        assert alice.average_rating == 4.0
        assert alice.total_reviews == 1
        assert alice.trust_score == 90.0
        inbox = await notifications.get_user_notifications(session, alice.id)
        assert inbox[0].type == models.NotificationType.RATING_RECEIVED.value

    async def test_both_sides_can_rate(self, session, swap_pair, completed_session):
        alice, bob = swap_pair

        await ratings.create_rating(session, bob.id, completed_session.id, 5, REVIEW)
        await ratings.create_rating(session, alice.id, completed_session.id, 3, REVIEW)

        assert alice.average_rating == 5.0
        assert bob.average_rating == 3.0
        assert [r.rated_by_id for r in await ratings.get_ratings_by_user(session, alice.id)] == [alice.id]
        assert [r.rated_user_id for r in await ratings.get_user_ratings(session, alice.id)] == [alice.id]

    async def test_duplicate_rating(self, session, swap_pair, completed_session):
        _, bob = swap_pair
        await ratings.create_rating(session, bob.id, completed_session.id, 5, REVIEW)
        with pytest.raises(ConflictError):
            await ratings.create_rating(session, bob.id, completed_session.id, 4, REVIEW)

    @pytest.mark.parametrize("score", [0, 6, 4.5, True])
    async def test_score_out_of_range(self, session, swap_pair, completed_session, score):
        _, bob = swap_pair
        with pytest.raises(ValidationFailedError):
            await ratings.create_rating(session, bob.id, completed_session.id, score, REVIEW)

    @pytest.mark.parametrize("review", ["too short", "   short    ", "x" * 501])
    async def test_review_length(self, session, swap_pair, completed_session, review):
        _, bob = swap_pair
        with pytest.raises(ValidationFailedError):
            await ratings.create_rating(session, bob.id, completed_session.id, 5, review)

    async def test_outsider(self, session, make_user, completed_session):
        eve = await make_user("Eve", teach=["Chess"], learn=["Yoga"])
        with pytest.raises(PermissionDeniedError):
            await ratings.create_rating(session, eve.id, completed_session.id, 5, REVIEW)

    async def test_session_must_be_completed(self, session, swap_pair, accepted_request):
        alice, bob = swap_pair
        scheduled = await sessions.schedule_session(
            session, accepted_request.id, alice.id, datetime(2030, 5, 1, 18, 0)
        )
        with pytest.raises(ConflictError):
            await ratings.create_rating(session, bob.id, scheduled.id, 5, REVIEW)


@pytest.mark.asyncio
class TestUpdateReputation:
    async def test_no_ratings_leaves_defaults(self, session, swap_pair):
        alice, _ = swap_pair
        user = await ratings.update_user_reputation(session, alice.id)
        assert user.average_rating == 0.0
        assert user.trust_score == 50.0
