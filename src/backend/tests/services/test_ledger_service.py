"""
Tests for the constituency vote and rating ledger.
"""

import asyncio

import pytest

from core.exceptions import (
    AlreadyVotedError,
    InvalidConstituencyError,
    InvalidRatingError,
    LedgerContentionError,
    PreconditionFailedError,
)
from models.cosmos_documents import ConstituencyScoreDocument
from services.ledger_service import (
    ConstituencyLedgerService,
    manifesto_score,
    running_mean,
    validate_ratings,
)


@pytest.fixture
def ledger(ledger_repo) -> ConstituencyLedgerService:
    return ConstituencyLedgerService(ledger_repo, constituency_count=243)


@pytest.mark.unit
class TestRatingHelpers:
    """Pure rating helpers."""

    def test_manifesto_score_is_mean(self) -> None:
        assert manifesto_score({"Health": 4, "Education": 3, "Roads": 5}) == 4.0

    def test_running_mean_from_empty(self) -> None:
        assert running_mean(0.0, 0, 4.0) == (4.0, 1)

    def test_running_mean_accumulates(self) -> None:
        average, count = running_mean(4.0, 1, 2.0)
        assert (average, count) == (3.0, 2)
        average, count = running_mean(average, count, 5.0)
        assert average == pytest.approx(11 / 3)
        assert count == 3

    def test_validate_trims_names(self) -> None:
        assert validate_ratings({" Health ": 5}) == {"Health": 5}

    @pytest.mark.parametrize(
        "ratings",
        [
            {},
            None,
            {"Health": 0},
            {"Health": 6},
            {"Health": 3.5},
            {"Health": "4"},
            {"Health": True},
            {"  ": 3},
            {"Health": 4, "Roads": 0},
        ],
    )
    def test_validate_rejects(self, ratings) -> None:
        with pytest.raises(InvalidRatingError):
            validate_ratings(ratings)


@pytest.mark.unit
class TestSatisfactionVote:
    """Once-per-user yes/no votes."""

    async def test_vote_increments_counters(self, ledger, ledger_repo) -> None:
        await ledger.submit_satisfaction_vote("u1", 5, True)
        await ledger.submit_satisfaction_vote("u2", 5, False)
        await ledger.submit_satisfaction_vote("u3", 5, True)

        scores = ledger_repo.scores[5]
        assert (scores.satisfaction_yes, scores.satisfaction_no, scores.satisfaction_total) == (2, 1, 3)
        assert scores.satisfaction_percentage == 67

    async def test_second_vote_rejected(self, ledger, ledger_repo) -> None:
        await ledger.submit_satisfaction_vote("u1", 5, True)

        with pytest.raises(AlreadyVotedError):
            await ledger.submit_satisfaction_vote("u1", 5, False)

        scores = ledger_repo.scores[5]
        assert scores.satisfaction_total == 1
        assert scores.satisfaction_no == 0

    async def test_same_user_can_vote_in_other_constituency(self, ledger, ledger_repo) -> None:
        await ledger.submit_satisfaction_vote("u1", 5, True)
        await ledger.submit_satisfaction_vote("u1", 6, True)

        assert ledger_repo.scores[5].satisfaction_total == 1
        assert ledger_repo.scores[6].satisfaction_total == 1

    async def test_concurrent_duplicate_votes_count_once(self, ledger, ledger_repo) -> None:
        results = await asyncio.gather(
            *(ledger.submit_satisfaction_vote("u1", 7, True) for _ in range(5)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if r is None) == 1
        assert all(isinstance(r, AlreadyVotedError) for r in results if r is not None)
        assert ledger_repo.scores[7].satisfaction_total == 1

    async def test_concurrent_votes_from_many_users(self, ledger, ledger_repo) -> None:
        await asyncio.gather(*(ledger.submit_satisfaction_vote(f"u{i}", 8, i % 2 == 0) for i in range(20)))

        scores = ledger_repo.scores[8]
        assert scores.satisfaction_total == 20
        assert scores.satisfaction_yes == 10

    async def test_vote_after_ratings_updates_marker(self, ledger, ledger_repo) -> None:
        await ledger.submit_department_ratings("u1", 5, {"Health": 4})
        await ledger.submit_satisfaction_vote("u1", 5, False)

        marker = ledger_repo.markers[("u1", 5)]
        assert marker.satisfaction_vote is False
        assert marker.department_ratings == {"Health": 4}

    @pytest.mark.parametrize("constituency_id", [0, -1, 244])
    async def test_unknown_constituency(self, ledger, ledger_repo, constituency_id) -> None:
        with pytest.raises(InvalidConstituencyError):
            await ledger.submit_satisfaction_vote("u1", constituency_id, True)
        assert ledger_repo.scores == {}

    @pytest.mark.parametrize("constituency_id", [0, 244])
    async def test_submission_status_unknown_constituency(self, ledger, constituency_id) -> None:
        with pytest.raises(InvalidConstituencyError):
            await ledger.has_submitted("u1", constituency_id)


@pytest.mark.unit
class TestDepartmentRatings:
    """Once-per-user department ratings and the manifesto average."""

    async def test_ratings_update_average(self, ledger, ledger_repo) -> None:
        score = await ledger.submit_department_ratings("u1", 12, {"Health": 4, "Education": 3, "Roads": 5})

        assert score == 4.0
        scores = ledger_repo.scores[12]
        assert scores.manifesto_average == 4.0
        assert scores.ratings_count == 1

    async def test_average_over_users(self, ledger, ledger_repo) -> None:
        await ledger.submit_department_ratings("u1", 12, {"Health": 5})
        await ledger.submit_department_ratings("u2", 12, {"Health": 2})
        await ledger.submit_department_ratings("u3", 12, {"Health": 2})

        scores = ledger_repo.scores[12]
        assert scores.ratings_count == 3
        assert scores.manifesto_average == pytest.approx(3.0)

    async def test_second_rating_rejected(self, ledger, ledger_repo) -> None:
        await ledger.submit_department_ratings("u1", 12, {"Health": 5})

        with pytest.raises(AlreadyVotedError):
            await ledger.submit_department_ratings("u1", 12, {"Health": 1})
        assert ledger_repo.scores[12].manifesto_average == 5.0

    async def test_invalid_ratings_touch_nothing(self, ledger, ledger_repo) -> None:
        with pytest.raises(InvalidRatingError):
            await ledger.submit_department_ratings("u1", 12, {"Health": 4, "Roads": 9})

        assert ledger_repo.scores == {}
        assert ledger_repo.markers == {}

    async def test_concurrent_ratings_keep_mean_exact(self, ledger_repo) -> None:
        values = [1, 2, 3, 4, 5, 5, 4, 3]
        # Worst case every round has a single winner
        ledger = ConstituencyLedgerService(ledger_repo, max_retries=len(values))
        await asyncio.gather(
            *(ledger.submit_department_ratings(f"u{i}", 20, {"Health": v}) for i, v in enumerate(values))
        )

        scores = ledger_repo.scores[20]
        assert scores.ratings_count == len(values)
        assert scores.manifesto_average == pytest.approx(sum(values) / len(values))

    async def test_contention_exhausts_retries(self, ledger_repo) -> None:
        async def always_stale(*args, **kwargs):
            raise PreconditionFailedError("stale")

        ledger_repo.commit_submission = always_stale
        ledger = ConstituencyLedgerService(ledger_repo, max_retries=3)

        with pytest.raises(LedgerContentionError):
            await ledger.submit_department_ratings("u1", 3, {"Health": 3})


@pytest.mark.unit
class TestQuestionnaire:
    """Vote and ratings submitted together."""

    async def test_records_both_parts(self, ledger, ledger_repo) -> None:
        score = await ledger.submit_questionnaire("u1", 9, True, {"Health": 2, "Roads": 4})

        assert score == 3.0
        scores = ledger_repo.scores[9]
        assert (scores.satisfaction_yes, scores.satisfaction_total) == (1, 1)
        assert (scores.manifesto_average, scores.ratings_count) == (3.0, 1)

        status = await ledger.has_submitted("u1", 9)
        assert status.voted and status.rated
        assert status.satisfaction_vote is True
        assert status.manifesto_score == 3.0

    async def test_rejected_when_vote_exists(self, ledger, ledger_repo) -> None:
        await ledger.submit_satisfaction_vote("u1", 9, False)

        with pytest.raises(AlreadyVotedError):
            await ledger.submit_questionnaire("u1", 9, True, {"Health": 5})

        scores = ledger_repo.scores[9]
        assert scores.satisfaction_total == 1
        assert scores.ratings_count == 0

    async def test_invalid_ratings_record_no_vote(self, ledger, ledger_repo) -> None:
        with pytest.raises(InvalidRatingError):
            await ledger.submit_questionnaire("u1", 9, True, {"Health": 0})
        assert ledger_repo.scores == {}


@pytest.mark.unit
class TestReads:
    async def test_has_submitted_for_new_user(self, ledger) -> None:
        status = await ledger.has_submitted("nobody", 1)
        assert not status.voted
        assert not status.rated

    async def test_get_scores_defaults_to_zero(self, ledger) -> None:
        scores = await ledger.get_scores(42)
        assert scores.constituency_id == 42
        assert scores.satisfaction_total == 0
        assert scores.manifesto_average == 0.0

    async def test_list_scores_ordered(self, ledger) -> None:
        for cid in (30, 10, 20):
            await ledger.submit_satisfaction_vote("u1", cid, True)

        assert [s.constituency_id for s in await ledger.list_scores()] == [10, 20, 30]


@pytest.mark.unit
class TestMaintenance:
    """Health check, initialization and corrections."""

    async def test_health_check_finds_problems(self, ledger_repo) -> None:
        ledger = ConstituencyLedgerService(ledger_repo, constituency_count=3)
        await ledger_repo.ensure_scores(1)
        broken = ConstituencyScoreDocument.empty(2)
        broken.satisfaction_yes = 2
        broken.satisfaction_total = 5
        ledger_repo.scores[2] = broken
        ledger_repo.scores[99] = ConstituencyScoreDocument.empty(99)

        report = await ledger.health_check()

        assert report.total_documents == 3
        assert report.valid == 1
        assert report.inconsistent_ids == [2]
        assert report.invalid_ids == [99]
        assert report.missing_ids == [3]
        assert not report.healthy

    async def test_initialize_missing(self, ledger_repo) -> None:
        ledger = ConstituencyLedgerService(ledger_repo, constituency_count=4)
        await ledger_repo.ensure_scores(2)

        created = await ledger.initialize_missing()

        assert created == [1, 3, 4]
        assert sorted(ledger_repo.scores) == [1, 2, 3, 4]
        assert (await ledger.health_check()).healthy
        assert await ledger.initialize_missing() == []

    async def test_correct_satisfaction(self, ledger, ledger_repo) -> None:
        await ledger.submit_satisfaction_vote("u1", 4, True)

        corrected = await ledger.correct_satisfaction(4, 0, 0)

        assert corrected.satisfaction_total == 0
        assert ledger_repo.scores[4].satisfaction_yes == 0

    async def test_correct_satisfaction_rejects_negative(self, ledger) -> None:
        with pytest.raises(ValueError):
            await ledger.correct_satisfaction(4, -1, 0)
