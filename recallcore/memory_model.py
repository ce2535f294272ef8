"""
Pure memory model: lifecycle transitions plus difficulty, stability and
interval updates for a single review.

Every function here is deterministic and free of I/O, so reviews of different
cards may be computed concurrently without coordination.
"""

import logging
import math
from typing import Tuple

from .constants import (
    LAPSE_STABILITY_FACTOR,
    MAX_DIFFICULTY,
    MAX_INTERVAL_DAYS,
    MAX_RATING,
    MEAN_RATING,
    MIN_DIFFICULTY,
    MIN_INTERVAL_DAYS,
    MIN_RATING,
    MIN_STABILITY,
)
from .exceptions import InvalidRatingError
from .models import CardState, ReviewInput, ReviewOutcome
from .parameters import ParameterSet

logger = logging.getLogger(__name__)

# Lower bound of each rating band in Review: interval modifier, stability factor.
_REVIEW_BANDS: Tuple[Tuple[int, float, float], ...] = (
    (9, 2.0, 1.5),
    (7, 1.5, 1.2),
    (5, 1.0, 1.0),
    (3, 0.5, 0.6),
)


def validate_rating(rating: int) -> int:
    """
    Return `rating` unchanged if it is an integer in [1, 10].

    Raises:
        InvalidRatingError: For anything else, including bools and floats.
    """
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRatingError(rating)
    if not (MIN_RATING <= rating <= MAX_RATING):
        raise InvalidRatingError(rating)
    return rating


def _review_band(rating: int) -> Tuple[float, float]:
    for lower, modifier, factor in _REVIEW_BANDS:
        if rating >= lower:
            return modifier, factor
    raise ValueError(f"Rating {rating} has no review band (lapse ratings are 1-2).")


def _round_half_away(value: float) -> int:
    # round() would use banker's rounding; intervals round .5 up.
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def transition_state(state: CardState, rating: int) -> Tuple[CardState, bool]:
    """
    Map the current lifecycle state and a rating to the next state.

    Returns:
        (next_state, is_lapse). Only Review -> Relearning is a lapse.
    """
    validate_rating(rating)
    if state == CardState.New:
        return CardState.Learning, False
    if state == CardState.Learning:
        return (CardState.Review if rating >= 5 else CardState.Learning), False
    if state == CardState.Review:
        if rating <= 2:
            return CardState.Relearning, True
        return CardState.Review, False
    if state == CardState.Relearning:
        return (CardState.Review if rating >= 5 else CardState.Relearning), False
    raise ValueError(f"Unknown card state: {state!r}")


def update_difficulty(difficulty: float, rating: int, params: ParameterSet) -> float:
    """
    Ratings above the 5.5 midpoint lower difficulty, ratings below raise it.
    The result is always clamped to [1, 10].
    """
    validate_rating(rating)
    delta = params.w_17 * (MEAN_RATING - rating)
    return min(max(difficulty + delta, MIN_DIFFICULTY), MAX_DIFFICULTY)


def schedule_interval(
    state: CardState, stability: float, rating: int, params: ParameterSet
) -> int:
    """
    Compute the next review interval in whole days, keyed on the state the
    card was in *before* this review.

    Review cards use ``stability * ln(R) / ln(w_11) * modifier``, where R is
    the desired retention and the modifier depends on the rating band. The
    result is always clamped to [1, 180].
    """
    validate_rating(rating)
    if state == CardState.New:
        interval = 1
    elif state == CardState.Learning:
        interval = 3 if rating >= 5 else 1
    elif state == CardState.Review:
        if rating <= 2:
            interval = 1
        else:
            modifier, _ = _review_band(rating)
            raw = (
                stability
                * math.log(params.desired_retention)
                / math.log(params.w_11)
                * modifier
            )
            interval = _round_half_away(raw)
    elif state == CardState.Relearning:
        interval = 3 if rating >= 6 else 1
    else:
        raise ValueError(f"Unknown card state: {state!r}")

    return min(max(interval, MIN_INTERVAL_DAYS), MAX_INTERVAL_DAYS)


def update_stability(
    state: CardState,
    stability: float,
    rating: int,
    new_interval: int,
    params: ParameterSet,
) -> float:
    """
    Compute the new stability from the pre-review state and stability and the
    interval just scheduled. Never returns less than 0.1.
    """
    validate_rating(rating)
    if state == CardState.New:
        new_stability = params.w_1 if rating >= 5 else MIN_STABILITY
    elif state == CardState.Learning:
        if rating >= 5:
            new_stability = stability + params.w_2 * new_interval / 10.0
        else:
            new_stability = MIN_STABILITY
    elif state == CardState.Review:
        if rating >= 3:
            _, factor = _review_band(rating)
            new_stability = stability + params.w_3 * factor * new_interval
        else:
            new_stability = stability * LAPSE_STABILITY_FACTOR
    elif state == CardState.Relearning:
        new_stability = stability * params.w_4 if rating >= 5 else MIN_STABILITY
    else:
        raise ValueError(f"Unknown card state: {state!r}")

    return max(new_stability, MIN_STABILITY)


def process_review(review_input: ReviewInput, params: ParameterSet) -> ReviewOutcome:
    """
    Run one review through the memory model.

    Steps run in a fixed order and each reads the pre-review state:
    1. validate the rating
    2. transition the lifecycle state
    3. schedule the interval (old state, old stability)
    4. update difficulty (old difficulty)
    5. update stability (old state, old stability, new interval)

    Raises:
        InvalidRatingError: If the rating is outside [1, 10].
    """
    rating = validate_rating(review_input.rating)
    old_state = review_input.state

    new_state, is_lapse = transition_state(old_state, rating)
    new_interval = schedule_interval(
        old_state, review_input.stability, rating, params
    )
    new_difficulty = update_difficulty(review_input.difficulty, rating, params)
    new_stability = update_stability(
        old_state, review_input.stability, rating, new_interval, params
    )

    logger.debug(
        f"Review {old_state.name} -> {new_state.name} (rating {rating}): "
        f"interval={new_interval}d, stability={new_stability:.3f}, "
        f"difficulty={new_difficulty:.3f}, lapse={is_lapse}"
    )

    return ReviewOutcome(
        new_interval=new_interval,
        new_difficulty=new_difficulty,
        new_stability=new_stability,
        new_state=new_state,
        is_lapse=is_lapse,
    )
