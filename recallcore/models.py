"""
Data models shared by the memory model, the scheduler and the persistence layer.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import IntEnum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .constants import (
    INITIAL_DIFFICULTY,
    MASTERY_STABILITY_DAYS,
    MAX_DIFFICULTY,
    MIN_DIFFICULTY,
)


class CardState(IntEnum):
    """
    Lifecycle state of a card's memory trace. Drives all branch logic.
    """

    New = 0
    Learning = 1
    Review = 2
    Relearning = 3


class ReviewInput(BaseModel):
    """
    A card's memory state together with the rating given for this review.

    The rating is only type-checked here; its range is enforced by
    process_review so that out-of-range values raise InvalidRatingError.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    state: CardState
    stability: float = Field(
        ...,
        ge=0.0,
        allow_inf_nan=False,
        description="Stability before the review (days). 0 for a fresh card.",
    )
    difficulty: float = Field(
        ...,
        ge=MIN_DIFFICULTY,
        le=MAX_DIFFICULTY,
        description="Difficulty before the review.",
    )
    rating: int = Field(
        ...,
        strict=True,
        description="Learner rating (1=total failure, 10=perfect).",
    )


@dataclass(frozen=True)
class ReviewOutcome:
    new_interval: int
    new_difficulty: float
    new_stability: float
    new_state: CardState
    is_lapse: bool


class Card(BaseModel):
    """
    Persisted memory state of one learnable item.

    Counters are advanced by the persistence layer when a review is applied;
    the memory model itself never touches them.
    """

    model_config = ConfigDict(validate_assignment=True, extra="forbid")

    uuid: UUID = Field(
        default_factory=uuid.uuid4,
        description="Unique UUIDv4 for the card. Auto-generated.",
    )
    item_id: str = Field(
        ...,
        min_length=1,
        description="Identifier of the learnable item this card tracks.",
    )
    due: date = Field(
        default_factory=lambda: datetime.now(timezone.utc).date(),
        description="The next date the card is scheduled for review.",
    )
    state: CardState = Field(
        default=CardState.New,
        description="The current lifecycle state of the card.",
    )
    stability: float = Field(
        default=0.0,
        ge=0.0,
        allow_inf_nan=False,
        description="The stability of the card's memory trace (in days).",
    )
    difficulty: float = Field(
        default=INITIAL_DIFFICULTY,
        ge=MIN_DIFFICULTY,
        le=MAX_DIFFICULTY,
        allow_inf_nan=False,
        description="The difficulty of the card.",
    )
    reps: int = Field(default=0, ge=0, description="Reviews applied so far.")
    lapses: int = Field(default=0, ge=0, description="Lapses recorded so far.")
    last_review: Optional[datetime] = Field(
        default=None,
        description="UTC timestamp of the most recent review.",
    )
    elapsed_days: int = Field(
        default=0,
        ge=0,
        description="Days between the two most recent reviews.",
    )
    scheduled_days: int = Field(
        default=0,
        ge=0,
        description="Interval (days) chosen at the most recent review.",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp when the card was created.",
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC timestamp of last modification.",
    )

    def to_review_input(self, rating: int) -> ReviewInput:
        """Snapshot the card's memory state for a review with `rating`."""
        return ReviewInput(
            state=self.state,
            stability=self.stability,
            difficulty=self.difficulty,
            rating=rating,
        )

    @property
    def is_mastered(self) -> bool:
        """Reviewed at least twice, in review, and stable for three weeks."""
        return (
            self.state == CardState.Review
            and self.stability >= MASTERY_STABILITY_DAYS
            and self.reps >= 2
        )

    @property
    def mastery_percent(self) -> int:
        if self.is_mastered:
            return 100
        return min(99, int(self.stability / MASTERY_STABILITY_DAYS * 100))
