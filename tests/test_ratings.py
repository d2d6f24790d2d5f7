"""
Tests for the Rating Engine

Covers:
- Aggregate arithmetic (rounding, create vs edit, delete floors)
- Review input validation
- Upsert/delete keeping ratingSum/ratingCount/averageRating consistent
- Cascading movie deletes in batches, including partial failure
- Aggregate drift and recalculation
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.errors import CascadeDeleteError, ErrorKind, ServiceError
from app.models import Movie, ReviewKey
from app.services.auth import Principal
from app.services.ratings import (
    RatingEngine,
    aggregate_after_delete,
    aggregate_after_upsert,
    aggregate_from_ratings,
    average,
    validate_review_input,
)
from app.services.stores import MovieStore, ReviewStore
from tests.conftest import make_movie, make_review


def assert_consistent(movie: Movie) -> None:
    """averageRating is absent exactly when ratingCount is 0, else the rounded quotient."""
    if movie.rating_count == 0:
        assert movie.average_rating is None
    else:
        assert Decimal(str(movie.average_rating)) == average(movie.rating_sum, movie.rating_count)


# =============================================================================
# Aggregate Arithmetic
# =============================================================================


class TestAverage:
    def test_average_none_without_reviews(self):
        assert average(0, 0) is None

    def test_average_exact(self):
        assert average(9, 2) == Decimal("4.50")

    def test_average_rounds_to_two_places(self):
        assert average(10, 3) == Decimal("3.33")
        assert average(11, 3) == Decimal("3.67")

    def test_average_rounds_half_up(self):
        # 1/8 = 0.125 exactly
        assert average(1, 8) == Decimal("0.13")


class TestAggregateTransitions:
    def test_create_adds_rating_and_count(self):
        movie = make_movie()
        movie.rating_sum, movie.rating_count = 4, 1

        aggregate = aggregate_after_upsert(movie, rating=5, previous_rating=None)

        assert (aggregate.rating_sum, aggregate.rating_count) == (9, 2)
        assert aggregate.average_rating == Decimal("4.50")

    def test_edit_replaces_contribution_and_keeps_count(self):
        movie = make_movie()
        movie.rating_sum, movie.rating_count = 9, 2

        aggregate = aggregate_after_upsert(movie, rating=2, previous_rating=4)

        assert (aggregate.rating_sum, aggregate.rating_count) == (7, 2)
        assert aggregate.average_rating == Decimal("3.50")

    def test_delete_last_review_clears_average(self):
        movie = make_movie()
        movie.rating_sum, movie.rating_count = 3, 1

        aggregate = aggregate_after_delete(movie, removed_rating=3)

        assert (aggregate.rating_sum, aggregate.rating_count) == (0, 0)
        assert aggregate.average_rating is None

    def test_delete_floors_at_zero(self):
        movie = make_movie()
        movie.rating_sum, movie.rating_count = 2, 0

        aggregate = aggregate_after_delete(movie, removed_rating=5)

        assert (aggregate.rating_sum, aggregate.rating_count) == (0, 0)

    def test_aggregate_from_ratings(self):
        aggregate = aggregate_from_ratings([5, 4, 4])
        assert (aggregate.rating_sum, aggregate.rating_count) == (13, 3)
        assert aggregate.average_rating == Decimal("4.33")


class TestValidateReviewInput:
    @pytest.mark.parametrize("rating", [1, 2, 3, 4, 5])
    def test_valid_ratings(self, rating):
        assert validate_review_input(rating, "fine") == (rating, "fine")

    @pytest.mark.parametrize("rating", [0, 6, -1, None, "4", 4.5, True])
    def test_invalid_ratings(self, rating):
        with pytest.raises(ServiceError) as exc_info:
            validate_review_input(rating, "fine")
        assert exc_info.value.kind is ErrorKind.INVALID_INPUT

    @pytest.mark.parametrize("comment", [None, "", "   ", 42])
    def test_blank_comment_rejected(self, comment):
        with pytest.raises(ServiceError) as exc_info:
            validate_review_input(3, comment)
        assert exc_info.value.kind is ErrorKind.INVALID_INPUT

    def test_comment_is_trimmed(self):
        assert validate_review_input(3, "  nice  ") == (3, "nice")


# =============================================================================
# Upsert and Delete
# =============================================================================


class TestUpsertReview:
    def test_rating_scenario(
        self,
        rating_engine: RatingEngine,
        movie_store: MovieStore,
        sample_movie: Movie,
        user: Principal,
        second_user: Principal,
    ):
        """A rates 4, B rates 5, A edits to 2, B deletes."""
        movie_id = sample_movie.movie_id

        rating_engine.upsert_review(movie_id, 4, "good", user)
        movie = movie_store.get(movie_id)
        assert (movie.rating_count, movie.rating_sum) == (1, 4)
        assert movie.average_rating == Decimal("4.00")

        rating_engine.upsert_review(movie_id, 5, "great", second_user)
        movie = movie_store.get(movie_id)
        assert (movie.rating_count, movie.rating_sum) == (2, 9)
        assert movie.average_rating == Decimal("4.50")

        rating_engine.upsert_review(movie_id, 2, "changed my mind", user)
        movie = movie_store.get(movie_id)
        assert (movie.rating_count, movie.rating_sum) == (2, 7)
        assert movie.average_rating == Decimal("3.50")

        rating_engine.delete_review(movie_id, second_user.subject_id, second_user)
        movie = movie_store.get(movie_id)
        assert (movie.rating_count, movie.rating_sum) == (1, 2)
        assert movie.average_rating == Decimal("2.00")
        assert_consistent(movie)

    def test_create_then_edit_flags(
        self, rating_engine: RatingEngine, sample_movie: Movie, user: Principal
    ):
        first = rating_engine.upsert_review(sample_movie.movie_id, 3, "ok", user)
        second = rating_engine.upsert_review(sample_movie.movie_id, 3, "ok", user)

        assert first.created is True
        assert second.created is False
        assert second.rating_count == 1
        assert first.review_id == second.review_id == user.subject_id

    def test_edit_preserves_created_at(
        self,
        rating_engine: RatingEngine,
        review_store: ReviewStore,
        sample_movie: Movie,
        user: Principal,
    ):
        key = ReviewKey(sample_movie.movie_id, user.subject_id)
        rating_engine.upsert_review(sample_movie.movie_id, 3, "ok", user)
        original = review_store.get(key)

        rating_engine.upsert_review(sample_movie.movie_id, 5, "better", user)
        edited = review_store.get(key)

        assert edited.created_at == original.created_at
        assert edited.updated_at >= original.updated_at
        assert edited.rating == 5
        assert edited.comment == "better"
        assert edited.display_name == user.display_name

    def test_upsert_missing_movie(self, rating_engine: RatingEngine, user: Principal):
        with pytest.raises(ServiceError) as exc_info:
            rating_engine.upsert_review("nope", 4, "good", user)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_invalid_input_has_no_side_effects(
        self,
        rating_engine: RatingEngine,
        review_store: ReviewStore,
        movie_store: MovieStore,
        sample_movie: Movie,
        user: Principal,
    ):
        with pytest.raises(ServiceError):
            rating_engine.upsert_review(sample_movie.movie_id, 6, "too good", user)

        assert review_store.query(sample_movie.movie_id) == []
        assert movie_store.get(sample_movie.movie_id).rating_count == 0

    def test_aggregate_failure_keeps_review(
        self,
        rating_engine: RatingEngine,
        review_store: ReviewStore,
        movie_store: MovieStore,
        sample_movie: Movie,
        user: Principal,
        monkeypatch,
    ):
        """The review write is not rolled back when the aggregate write fails."""

        def broken_update(*args, **kwargs):
            raise OperationalError("UPDATE movies", {}, Exception("disk I/O error"))

        monkeypatch.setattr(movie_store, "update_aggregate", broken_update)

        with pytest.raises(ServiceError) as exc_info:
            rating_engine.upsert_review(sample_movie.movie_id, 4, "good", user)

        assert exc_info.value.kind is ErrorKind.INTERNAL
        assert review_store.get(ReviewKey(sample_movie.movie_id, user.subject_id)) is not None
        monkeypatch.undo()
        assert movie_store.get(sample_movie.movie_id).rating_count == 0


class TestDeleteReview:
    def test_delete_by_author(
        self,
        rating_engine: RatingEngine,
        review_store: ReviewStore,
        sample_movie: Movie,
        user: Principal,
    ):
        rating_engine.upsert_review(sample_movie.movie_id, 4, "good", user)

        result = rating_engine.delete_review(sample_movie.movie_id, user.subject_id, user)

        assert result.rating_count == 0
        assert result.average_rating is None
        assert review_store.get(ReviewKey(sample_movie.movie_id, user.subject_id)) is None

    def test_delete_by_admin(
        self,
        rating_engine: RatingEngine,
        sample_movie: Movie,
        user: Principal,
        second_user: Principal,
        admin: Principal,
    ):
        rating_engine.upsert_review(sample_movie.movie_id, 4, "good", user)
        rating_engine.upsert_review(sample_movie.movie_id, 1, "bad", second_user)

        result = rating_engine.delete_review(sample_movie.movie_id, second_user.subject_id, admin)

        assert result.rating_count == 1
        assert result.average_rating == Decimal("4.00")

    def test_delete_by_other_user_forbidden(
        self,
        rating_engine: RatingEngine,
        sample_movie: Movie,
        user: Principal,
        second_user: Principal,
    ):
        rating_engine.upsert_review(sample_movie.movie_id, 4, "good", user)

        with pytest.raises(ServiceError) as exc_info:
            rating_engine.delete_review(sample_movie.movie_id, user.subject_id, second_user)
        assert exc_info.value.kind is ErrorKind.FORBIDDEN

    def test_forbidden_checked_before_existence(
        self, rating_engine: RatingEngine, sample_movie: Movie, second_user: Principal
    ):
        with pytest.raises(ServiceError) as exc_info:
            rating_engine.delete_review(sample_movie.movie_id, "someone-else", second_user)
        assert exc_info.value.kind is ErrorKind.FORBIDDEN

    def test_delete_missing_review(
        self, rating_engine: RatingEngine, sample_movie: Movie, user: Principal
    ):
        with pytest.raises(ServiceError) as exc_info:
            rating_engine.delete_review(sample_movie.movie_id, user.subject_id, user)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_delete_review_of_missing_movie(
        self, rating_engine: RatingEngine, review_store: ReviewStore, user: Principal
    ):
        review_store.put(make_review("ghost", user.subject_id, 3))

        with pytest.raises(ServiceError) as exc_info:
            rating_engine.delete_review("ghost", user.subject_id, user)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert review_store.get(ReviewKey("ghost", user.subject_id)) is not None

    def test_delete_floors_drifted_aggregate(
        self,
        rating_engine: RatingEngine,
        movie_store: MovieStore,
        review_store: ReviewStore,
        sample_movie: Movie,
        user: Principal,
    ):
        # Review exists but the aggregate never counted it
        review_store.put(make_review(sample_movie.movie_id, user.subject_id, 5))

        result = rating_engine.delete_review(sample_movie.movie_id, user.subject_id, user)

        movie = movie_store.get(sample_movie.movie_id)
        assert result.rating_count == 0
        assert (movie.rating_sum, movie.rating_count) == (0, 0)
        assert_consistent(movie)


# =============================================================================
# Cascading Movie Delete
# =============================================================================


class TestDeleteMovie:
    def _seed_reviews(self, review_store: ReviewStore, movie_id: str, count: int) -> None:
        for i in range(count):
            review_store.put(make_review(movie_id, f"reviewer-{i}", (i % 5) + 1))

    def test_delete_movie_removes_all_reviews(
        self,
        rating_engine: RatingEngine,
        movie_store: MovieStore,
        review_store: ReviewStore,
        sample_movie: Movie,
        second_movie: Movie,
        admin: Principal,
    ):
        self._seed_reviews(review_store, sample_movie.movie_id, 60)
        self._seed_reviews(review_store, second_movie.movie_id, 3)

        result = rating_engine.delete_movie(sample_movie.movie_id, admin)

        assert result.reviews_deleted == 60
        assert review_store.query(sample_movie.movie_id) == []
        assert movie_store.get(sample_movie.movie_id) is None
        # Other movies are untouched
        assert len(review_store.query(second_movie.movie_id)) == 3

    def test_delete_movie_without_reviews(
        self, rating_engine: RatingEngine, movie_store: MovieStore, sample_movie: Movie, admin: Principal
    ):
        result = rating_engine.delete_movie(sample_movie.movie_id, admin)

        assert result.reviews_deleted == 0
        assert movie_store.get(sample_movie.movie_id) is None

    def test_delete_movie_requires_admin(
        self, rating_engine: RatingEngine, movie_store: MovieStore, sample_movie: Movie, user: Principal
    ):
        with pytest.raises(ServiceError) as exc_info:
            rating_engine.delete_movie(sample_movie.movie_id, user)
        assert exc_info.value.kind is ErrorKind.FORBIDDEN
        assert movie_store.get(sample_movie.movie_id) is not None

    def test_delete_missing_movie(self, rating_engine: RatingEngine, admin: Principal):
        with pytest.raises(ServiceError) as exc_info:
            rating_engine.delete_movie("nope", admin)
        assert exc_info.value.kind is ErrorKind.NOT_FOUND

    def test_total_batch_failure_is_labelled(
        self,
        rating_engine: RatingEngine,
        movie_store: MovieStore,
        review_store: ReviewStore,
        sample_movie: Movie,
        admin: Principal,
        monkeypatch,
    ):
        self._seed_reviews(review_store, sample_movie.movie_id, 30)

        def failing_batch_delete(keys):
            raise OperationalError("DELETE FROM reviews", {}, Exception("down"))

        monkeypatch.setattr(review_store, "batch_delete", failing_batch_delete)

        with pytest.raises(CascadeDeleteError) as exc_info:
            rating_engine.delete_movie(sample_movie.movie_id, admin)

        assert exc_info.value.outcome.completely_failed
        assert "(total)" in exc_info.value.message
        assert len(review_store.query(sample_movie.movie_id)) == 30
        assert movie_store.get(sample_movie.movie_id) is not None

    def test_partial_batch_failure_keeps_movie_and_retry_finishes(
        self,
        rating_engine: RatingEngine,
        movie_store: MovieStore,
        review_store: ReviewStore,
        sample_movie: Movie,
        admin: Principal,
        monkeypatch,
    ):
        self._seed_reviews(review_store, sample_movie.movie_id, 60)
        real_batch_delete = review_store.batch_delete
        calls = {"n": 0}

        def flaky_batch_delete(keys):
            calls["n"] += 1
            if any(key.author_id == "reviewer-0" for key in keys):
                raise OperationalError("DELETE FROM reviews", {}, Exception("throttled"))
            return real_batch_delete(keys)

        monkeypatch.setattr(review_store, "batch_delete", flaky_batch_delete)

        with pytest.raises(CascadeDeleteError) as exc_info:
            rating_engine.delete_movie(sample_movie.movie_id, admin)

        outcome = exc_info.value.outcome
        assert exc_info.value.kind is ErrorKind.INTERNAL
        assert outcome.total_batches == 3
        assert len(outcome.failed) == 1
        assert "(partial)" in exc_info.value.message
        assert not outcome.completely_failed
        assert movie_store.get(sample_movie.movie_id) is not None
        remaining = review_store.query(sample_movie.movie_id)
        assert 0 < len(remaining) < 60

        monkeypatch.undo()
        result = rating_engine.delete_movie(sample_movie.movie_id, admin)

        assert result.reviews_deleted == len(remaining)
        assert movie_store.get(sample_movie.movie_id) is None
        assert review_store.query(sample_movie.movie_id) == []


# =============================================================================
# Drift and Recalculation
# =============================================================================


class TestRecalculate:
    def test_lost_update_is_repaired(
        self,
        rating_engine: RatingEngine,
        movie_store: MovieStore,
        sample_movie: Movie,
        user: Principal,
        second_user: Principal,
        monkeypatch,
    ):
        """
        Two upserts that both read the movie before either writes its
        aggregate: the later write wins and one increment is lost.
        """
        stale = movie_store.get(sample_movie.movie_id)
        real_get = movie_store.get
        monkeypatch.setattr(movie_store, "get", lambda movie_id: stale)

        rating_engine.upsert_review(sample_movie.movie_id, 4, "good", user)
        rating_engine.upsert_review(sample_movie.movie_id, 2, "meh", second_user)

        monkeypatch.setattr(movie_store, "get", real_get)
        drifted = movie_store.get(sample_movie.movie_id)
        assert (drifted.rating_sum, drifted.rating_count) == (2, 1)

        aggregate = rating_engine.recalculate_movie_rating(sample_movie.movie_id)

        repaired = movie_store.get(sample_movie.movie_id)
        assert (aggregate.rating_sum, aggregate.rating_count) == (6, 2)
        assert (repaired.rating_sum, repaired.rating_count) == (6, 2)
        assert repaired.average_rating == Decimal("3.00")

    def test_recalculate_all(
        self,
        rating_engine: RatingEngine,
        review_store: ReviewStore,
        movie_store: MovieStore,
        sample_movie: Movie,
        second_movie: Movie,
    ):
        review_store.put(make_review(sample_movie.movie_id, "x", 5))
        review_store.put(make_review(second_movie.movie_id, "y", 1))
        review_store.put(make_review(second_movie.movie_id, "z", 2))

        assert rating_engine.recalculate_all_movie_ratings() == 2

        first = movie_store.get(sample_movie.movie_id)
        second = movie_store.get(second_movie.movie_id)
        assert (first.rating_sum, first.rating_count) == (5, 1)
        assert (second.rating_sum, second.rating_count) == (3, 2)
        assert second.average_rating == Decimal("1.50")

    def test_recalculate_missing_movie(self, rating_engine: RatingEngine):
        with pytest.raises(ServiceError) as exc_info:
            rating_engine.recalculate_movie_rating("nope")
        assert exc_info.value.kind is ErrorKind.NOT_FOUND
