"""
Utility functions for data marshalling between Pydantic models and database formats.
The lifecycle state is stored as lowercase text; only this module converts
between that text and CardState.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..exceptions import MarshallingError
from ..models import Card, CardState
from ..parameters import WEIGHT_NAMES, ParameterSet

STATE_TO_TEXT: Dict[CardState, str] = {
    CardState.New: "new",
    CardState.Learning: "learning",
    CardState.Review: "review",
    CardState.Relearning: "relearning",
}
TEXT_TO_STATE: Dict[str, CardState] = {
    text: state for state, text in STATE_TO_TEXT.items()
}

PARAMETER_COLUMNS: Tuple[str, ...] = WEIGHT_NAMES + ("desired_retention",)


def state_to_text(state: CardState) -> str:
    return STATE_TO_TEXT[CardState(state)]


def text_to_state(text: str) -> CardState:
    """
    Parse a stored lifecycle state.

    Raises:
        MarshallingError: If the text is not one of the four known states.
    """
    try:
        return TEXT_TO_STATE[text]
    except KeyError:
        raise MarshallingError(f"Unknown card state in database: {text!r}") from None


def to_db_timestamp(ts: Optional[datetime]) -> Optional[datetime]:
    """Normalise a timestamp to naive UTC for storage. Naive input is taken as UTC."""
    if ts is None:
        return None
    if ts.tzinfo is not None and ts.tzinfo.utcoffset(ts) is not None:
        ts = ts.astimezone(timezone.utc)
    return ts.replace(tzinfo=None)


def from_db_timestamp(ts: Optional[datetime]) -> Optional[datetime]:
    if ts is None:
        return None
    return ts.replace(tzinfo=timezone.utc)


def card_to_db_params_list(cards: Sequence[Card]) -> List[Tuple]:
    """
    Convert a sequence of Card models into tuples for bulk insertion.

    Returns:
        List[Tuple]: One tuple per card in column order:
        (uuid, item_id, due, stability, difficulty, state, reps, lapses,
        last_review, elapsed_days, scheduled_days, created_at, updated_at).
    """
    return [
        (
            card.uuid,
            card.item_id,
            card.due,
            card.stability,
            card.difficulty,
            state_to_text(card.state),
            card.reps,
            card.lapses,
            to_db_timestamp(card.last_review),
            card.elapsed_days,
            card.scheduled_days,
            to_db_timestamp(card.created_at),
            to_db_timestamp(card.updated_at),
        )
        for card in cards
    ]


def db_row_to_card(row_dict: Dict[str, Any]) -> Card:
    """
    Create a Card model from a database row dictionary.

    Raises:
        MarshallingError: If the state text is unknown or the row does not
            validate into a Card.
    """
    data = row_dict.copy()
    data["state"] = text_to_state(data["state"])
    for key in ("last_review", "created_at", "updated_at"):
        data[key] = from_db_timestamp(data.get(key))

    try:
        return Card(**data)
    except ValidationError as e:
        raise MarshallingError(
            f"Failed to parse card from DB row: {row_dict}. Error: {e}",
            original_exception=e,
        ) from e


def parameters_to_db_params_tuple(params: ParameterSet) -> Tuple[float, ...]:
    """Values of `params` in PARAMETER_COLUMNS order."""
    return tuple(getattr(params, column) for column in PARAMETER_COLUMNS)
