import datetime

import pytest

from recallcore.exceptions import InvalidRatingError
from recallcore.models import Card, CardState
from recallcore.parameters import ParameterSet
from recallcore.scheduler import BaseScheduler, RecallScheduler

# Helper to create datetime objects easily
UTC = datetime.timezone.utc


@pytest.fixture
def scheduler() -> RecallScheduler:
    """Provides a RecallScheduler instance with default parameters."""
    return RecallScheduler(ParameterSet())


def test_default_scheduler_uses_default_parameters():
    assert RecallScheduler().parameters == ParameterSet()
    assert isinstance(RecallScheduler(), BaseScheduler)


def test_base_scheduler_is_abstract():
    with pytest.raises(TypeError):
        BaseScheduler()


def test_first_review_new_card(scheduler: RecallScheduler, new_card: Card):
    """A new card always enters learning with a one-day interval."""
    review_ts = datetime.datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)

    result = scheduler.compute_next_state(new_card, 5, review_ts)

    assert result.state == CardState.Learning
    assert result.scheduled_days == 1
    assert result.next_due == datetime.date(2024, 1, 2)
    assert result.review_type == "learn"
    assert result.elapsed_days == 0
    assert result.is_lapse is False
    assert result.stab == pytest.approx(0.40)
    assert result.diff == pytest.approx(5.145)


def test_lapse_on_review_card(scheduler: RecallScheduler, review_card: Card):
    review_ts = datetime.datetime(2024, 1, 31, 8, 0, 0, tzinfo=UTC)

    result = scheduler.compute_next_state(review_card, 1, review_ts)

    assert result.state == CardState.Relearning
    assert result.is_lapse is True
    assert result.review_type == "review"
    assert result.scheduled_days == 1
    assert result.next_due == datetime.date(2024, 2, 1)
    assert result.elapsed_days == 30
    assert result.stab == pytest.approx(10.8)


def test_review_type_for_relearning(scheduler: RecallScheduler):
    card = Card(item_id="x", state=CardState.Relearning, stability=5.0)
    result = scheduler.compute_next_state(
        card, 8, datetime.datetime(2024, 3, 1, tzinfo=UTC)
    )
    assert result.review_type == "relearn"
    assert result.state == CardState.Review
    assert result.scheduled_days == 3


def test_next_due_uses_utc_date(scheduler: RecallScheduler, new_card: Card):
    """A late-evening review in UTC-5 falls on the next UTC day."""
    est = datetime.timezone(datetime.timedelta(hours=-5))
    review_ts = datetime.datetime(2024, 1, 1, 22, 0, 0, tzinfo=est)

    result = scheduler.compute_next_state(new_card, 5, review_ts)

    assert result.next_due == datetime.date(2024, 1, 3)


def test_naive_timestamp_is_treated_as_utc(scheduler: RecallScheduler, new_card: Card):
    naive = datetime.datetime(2024, 1, 1, 23, 30, 0)
    aware = naive.replace(tzinfo=UTC)
    assert scheduler.compute_next_state(
        new_card, 6, naive
    ) == scheduler.compute_next_state(new_card, 6, aware)


def test_elapsed_days_never_negative(scheduler: RecallScheduler, review_card: Card):
    earlier = datetime.datetime(2023, 12, 25, tzinfo=UTC)
    result = scheduler.compute_next_state(review_card, 5, earlier)
    assert result.elapsed_days == 0


@pytest.mark.parametrize("rating", [0, 11, -1, 5.5])
def test_invalid_rating_input(scheduler: RecallScheduler, new_card: Card, rating):
    review_ts = datetime.datetime(2024, 1, 1, 10, 0, 0)
    with pytest.raises(InvalidRatingError, match=r"Must be 1-10"):
        scheduler.compute_next_state(new_card, rating, review_ts)


def test_custom_parameters_change_schedule(review_card: Card):
    review_ts = datetime.datetime(2024, 1, 31, tzinfo=UTC)
    default_result = RecallScheduler().compute_next_state(review_card, 10, review_ts)
    low_retention = RecallScheduler(ParameterSet(desired_retention=0.7))
    custom_result = low_retention.compute_next_state(review_card, 10, review_ts)
    assert custom_result.scheduled_days > default_result.scheduled_days


def test_review_does_not_mutate_card(scheduler: RecallScheduler, review_card: Card):
    before = review_card.model_copy()
    scheduler.review(review_card, 9)
    assert review_card == before
