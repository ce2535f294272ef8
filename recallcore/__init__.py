"""Recallcore - a spaced-repetition scheduling engine with a DuckDB store."""

from .constants import DEFAULT_PARAMETERS, DEFAULT_DESIRED_RETENTION
from .exceptions import InvalidRatingError, ParameterValidationError, StaleCardError
from .models import Card, CardState, ReviewInput, ReviewOutcome
from .parameters import ParameterSet, load_parameters_file, parameters_from_mapping
from .memory_model import (
    process_review,
    schedule_interval,
    transition_state,
    update_difficulty,
    update_stability,
)
from .scheduler import RecallScheduler, SchedulerOutput
from .db import RecallDatabase
from .review_processor import ReviewProcessor

__all__ = [
    "DEFAULT_PARAMETERS",
    "DEFAULT_DESIRED_RETENTION",
    "InvalidRatingError",
    "ParameterValidationError",
    "StaleCardError",
    "Card",
    "CardState",
    "ReviewInput",
    "ReviewOutcome",
    "ParameterSet",
    "load_parameters_file",
    "parameters_from_mapping",
    "process_review",
    "schedule_interval",
    "transition_state",
    "update_difficulty",
    "update_stability",
    "RecallScheduler",
    "SchedulerOutput",
    "RecallDatabase",
    "ReviewProcessor",
]
