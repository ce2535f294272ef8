# recallcore/scheduler.py

"""
Defines the BaseScheduler abstract class and RecallScheduler, which binds a
ParameterSet to the memory model and turns its outcome into a concrete due date.
"""

import datetime
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from .memory_model import process_review, validate_rating
from .models import Card, CardState, ReviewOutcome
from .parameters import ParameterSet

logger = logging.getLogger(__name__)


@dataclass
class SchedulerOutput:
    stab: float
    diff: float
    next_due: datetime.date
    scheduled_days: int
    review_type: str
    elapsed_days: int
    state: CardState
    is_lapse: bool


class BaseScheduler(ABC):
    """
    Abstract base class for all schedulers in recallcore.
    """

    @abstractmethod
    def compute_next_state(
        self, card: Card, new_rating: int, review_ts: datetime.datetime
    ) -> SchedulerOutput:
        """
        Computes the next state of a card based on its cached state and a new rating.

        Args:
            card: The Card object containing cached state (stability, difficulty, state).
            new_rating: The rating given for the current review (1-10).
            review_ts: The timestamp of the current review.

        Returns:
            A SchedulerOutput object containing the new state.

        Raises:
            InvalidRatingError: If the new_rating is invalid.
        """
        pass


class RecallScheduler(BaseScheduler):
    """
    Scheduler backed by the recallcore memory model.

    The parameter set is fixed for the lifetime of the instance; build a new
    scheduler to apply recalibrated parameters.
    """

    REVIEW_TYPE_MAP = {
        CardState.New: "learn",
        CardState.Learning: "learn",
        CardState.Review: "review",
        CardState.Relearning: "relearn",
    }

    def __init__(self, parameters: Optional[ParameterSet] = None):
        if parameters is None:
            parameters = ParameterSet()
        self.parameters = parameters

    def _ensure_utc(self, ts: datetime.datetime) -> datetime.datetime:
        """Ensures the given datetime is UTC. Assumes UTC if naive."""
        if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
            return ts.replace(tzinfo=datetime.timezone.utc)
        if ts.tzinfo != datetime.timezone.utc:
            return ts.astimezone(datetime.timezone.utc)
        return ts

    def _elapsed_days(self, card: Card, utc_review_ts: datetime.datetime) -> int:
        if card.last_review is None:
            return 0
        last_review = self._ensure_utc(card.last_review)
        return max(0, (utc_review_ts.date() - last_review.date()).days)

    def review(self, card: Card, new_rating: int) -> ReviewOutcome:
        """Run the memory model on the card's current state."""
        validate_rating(new_rating)
        return process_review(card.to_review_input(new_rating), self.parameters)

    def compute_next_state(
        self, card: Card, new_rating: int, review_ts: datetime.datetime
    ) -> SchedulerOutput:
        """
        Computes the next state of a card from its cached memory state.
        """
        outcome = self.review(card, new_rating)
        utc_review_ts = self._ensure_utc(review_ts)
        next_due = utc_review_ts.date() + datetime.timedelta(
            days=outcome.new_interval
        )
        logger.debug(f"Card {card.uuid} next due {next_due}")

        return SchedulerOutput(
            stab=outcome.new_stability,
            diff=outcome.new_difficulty,
            next_due=next_due,
            scheduled_days=outcome.new_interval,
            review_type=self.REVIEW_TYPE_MAP[card.state],
            elapsed_days=self._elapsed_days(card, utc_review_ts),
            state=outcome.new_state,
            is_lapse=outcome.is_lapse,
        )
