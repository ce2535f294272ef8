"""
Review processing for recallcore: reads a card's memory state, runs the
scheduler on it, and persists the outcome.

The ReviewProcessor keeps the memory model free of storage concerns:
1. Rating validation (before any storage access)
2. Timestamp handling
3. Scheduler computation
4. Atomic persistence of the outcome
5. Error handling
"""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from .db.database import RecallDatabase
from .exceptions import CardOperationError
from .memory_model import validate_rating
from .models import Card
from .scheduler import BaseScheduler, RecallScheduler, SchedulerOutput

logger = logging.getLogger(__name__)


class ReviewProcessor:
    """
    Processes review submissions against a RecallDatabase.
    """

    def __init__(
        self,
        db_manager: RecallDatabase,
        scheduler: Optional[BaseScheduler] = None,
    ):
        """
        Initialize the ReviewProcessor.

        Args:
            db_manager: Database manager instance for persistence
            scheduler: Scheduler used to compute next states. When omitted, a
                RecallScheduler is built from the parameter set stored in
                `db_manager`, which is read once here.
        """
        self.db_manager = db_manager
        if scheduler is None:
            scheduler = RecallScheduler(db_manager.load_parameters())
        self.scheduler = scheduler

    def process_review(
        self,
        card: Card,
        rating: int,
        reviewed_at: Optional[datetime] = None,
    ) -> Card:
        """
        Process a review submission.

        Args:
            card: The card being reviewed, as last read from the database
            rating: User's rating (1-10)
            reviewed_at: Review timestamp (defaults to current time)

        Returns:
            Updated Card object with new state and scheduling information

        Raises:
            InvalidRatingError: If rating is outside 1-10; nothing is written.
            StaleCardError: If the card was reviewed again after `card` was
                read; nothing is written.
            CardOperationError: If the database operation fails
        """
        validate_rating(rating)
        ts = reviewed_at or datetime.now(timezone.utc)

        logger.debug(
            f"Processing review for card {card.uuid} with rating {rating}"
        )

        try:
            scheduler_output: SchedulerOutput = (
                self.scheduler.compute_next_state(
                    card=card, new_rating=rating, review_ts=ts
                )
            )
            updated_card = self.db_manager.apply_review(
                card.uuid, scheduler_output, ts, expected_reps=card.reps
            )
        except Exception:
            logger.exception(f"Failed to process review for card {card.uuid}")
            raise

        if scheduler_output.is_lapse:
            logger.info(f"Card {card.uuid} lapsed (lapses={updated_card.lapses})")
        logger.debug(
            f"Review processed successfully for card {card.uuid}. "
            f"Next due: {updated_card.due}, State: {updated_card.state.name}"
        )
        return updated_card

    def process_review_by_uuid(
        self,
        card_uuid: UUID,
        rating: int,
        reviewed_at: Optional[datetime] = None,
    ) -> Card:
        """
        Fetch the card by UUID and process a review for it.

        Raises:
            InvalidRatingError: If rating is outside 1-10.
            CardOperationError: If the card is not found or the update fails
        """
        validate_rating(rating)
        card = self.db_manager.get_card_by_uuid(card_uuid)
        if card is None:
            raise CardOperationError(f"Card {card_uuid} not found in database")

        return self.process_review(
            card=card,
            rating=rating,
            reviewed_at=reviewed_at,
        )
