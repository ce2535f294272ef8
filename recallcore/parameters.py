"""
The parameter set consumed by the memory model, plus loaders for YAML files
and plain mappings.

A ParameterSet is immutable and validated once when it is built. Loaders turn
any validation failure into a ParameterValidationError so callers can treat a
malformed set as a fatal configuration problem at start-up.
"""

import logging
import math
from pathlib import Path
from typing import Any, Dict, Mapping, Sequence, Tuple, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .constants import (
    DEFAULT_DESIRED_RETENTION,
    DEFAULT_PARAMETERS,
    PARAMETER_COUNT,
)
from .exceptions import ParameterValidationError

logger = logging.getLogger(__name__)

WEIGHT_NAMES: Tuple[str, ...] = tuple(
    f"w_{i}" for i in range(1, PARAMETER_COUNT + 1)
)


class ParameterSet(BaseModel):
    """
    Nineteen tunable weights plus the target retention used by the scheduler.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    w_1: float = Field(
        default=DEFAULT_PARAMETERS[0],
        description="Stability (days) assigned after a successful first review.",
    )
    w_2: float = Field(
        default=DEFAULT_PARAMETERS[1],
        description="Stability gain per scheduled day while learning.",
    )
    w_3: float = Field(
        default=DEFAULT_PARAMETERS[2],
        description="Base stability gain per scheduled day in review.",
    )
    w_4: float = Field(
        default=DEFAULT_PARAMETERS[3],
        description="Stability multiplier when recovering from relearning.",
    )
    w_5: float = DEFAULT_PARAMETERS[4]
    w_6: float = DEFAULT_PARAMETERS[5]
    w_7: float = DEFAULT_PARAMETERS[6]
    w_8: float = DEFAULT_PARAMETERS[7]
    w_9: float = DEFAULT_PARAMETERS[8]
    w_10: float = DEFAULT_PARAMETERS[9]
    w_11: float = Field(
        default=DEFAULT_PARAMETERS[10],
        description="Decay-rate constant of the forgetting curve.",
    )
    w_12: float = DEFAULT_PARAMETERS[11]
    w_13: float = DEFAULT_PARAMETERS[12]
    w_14: float = DEFAULT_PARAMETERS[13]
    w_15: float = DEFAULT_PARAMETERS[14]
    w_16: float = DEFAULT_PARAMETERS[15]
    w_17: float = Field(
        default=DEFAULT_PARAMETERS[16],
        description="Difficulty change per rating point away from the midpoint.",
    )
    w_18: float = DEFAULT_PARAMETERS[17]
    w_19: float = DEFAULT_PARAMETERS[18]
    desired_retention: float = Field(
        default=DEFAULT_DESIRED_RETENTION,
        gt=0.0,
        lt=1.0,
        description="Target probability of recall at the next review.",
    )

    @model_validator(mode="after")
    def check_engine_domain(self) -> "ParameterSet":
        """Reject values for which the interval formula is undefined."""
        for name, value in self.model_dump().items():
            if not math.isfinite(value):
                raise ValueError(f"Parameter '{name}' must be finite, got {value}.")
        if self.w_11 <= 0.0 or self.w_11 == 1.0:
            raise ValueError(
                f"w_11 must be positive and different from 1, got {self.w_11}."
            )
        return self

    @property
    def weights(self) -> Tuple[float, ...]:
        """The nineteen weights in order, without desired_retention."""
        return tuple(getattr(self, name) for name in WEIGHT_NAMES)

    @classmethod
    def from_weights(
        cls,
        weights: Sequence[float],
        desired_retention: float = DEFAULT_DESIRED_RETENTION,
    ) -> "ParameterSet":
        """
        Build a parameter set from an ordered sequence of nineteen weights.

        Raises:
            ParameterValidationError: If the sequence has the wrong length or
                the resulting set is invalid.
        """
        if isinstance(weights, (str, bytes)) or not isinstance(weights, Sequence):
            raise ParameterValidationError(
                f"Weights must be a sequence of {PARAMETER_COUNT} numbers."
            )
        if len(weights) != PARAMETER_COUNT:
            raise ParameterValidationError(
                f"Expected {PARAMETER_COUNT} weights, got {len(weights)}."
            )
        fields: Dict[str, Any] = dict(zip(WEIGHT_NAMES, weights))
        fields["desired_retention"] = desired_retention
        return _validate_fields(fields)


def _validate_fields(fields: Mapping[str, Any]) -> ParameterSet:
    try:
        return ParameterSet.model_validate(dict(fields))
    except ValidationError as e:
        error_details = e.errors()[0]
        field = ".".join(map(str, error_details["loc"])) or "<root>"
        msg = error_details["msg"]
        raise ParameterValidationError(
            f"Invalid parameter set, field '{field}': {msg}",
            original_exception=e,
        ) from e


def parameters_from_mapping(data: Any) -> ParameterSet:
    """
    Build a ParameterSet from a mapping.

    The mapping holds either explicit ``w_1``..``w_19`` keys or a ``weights``
    list of nineteen numbers, plus an optional ``desired_retention``. Missing
    explicit weights fall back to their defaults.

    Raises:
        ParameterValidationError: If the data is not a mapping, mixes both
            styles, or describes an invalid set.
    """
    if not isinstance(data, Mapping):
        raise ParameterValidationError(
            f"Parameter data must be a mapping, got {type(data).__name__}."
        )
    fields = dict(data)
    weights = fields.pop("weights", None)
    if weights is None:
        return _validate_fields(fields)

    explicit = sorted(key for key in fields if key in WEIGHT_NAMES)
    if explicit:
        raise ParameterValidationError(
            f"Use either 'weights' or explicit keys, not both (found {explicit})."
        )
    desired_retention = fields.pop("desired_retention", DEFAULT_DESIRED_RETENTION)
    if fields:
        raise ParameterValidationError(
            f"Unknown parameter keys: {sorted(fields)}."
        )
    return ParameterSet.from_weights(weights, desired_retention)


def load_parameters_file(file_path: Union[str, Path]) -> ParameterSet:
    """
    Read and validate a YAML parameter file.

    Raises:
        ParameterValidationError: If the file is missing or unreadable, is not
            valid YAML, or does not describe a valid parameter set.
    """
    path = Path(file_path)
    try:
        content = path.read_text(encoding="utf-8")
        raw = yaml.safe_load(content)
    except FileNotFoundError:
        raise ParameterValidationError(
            f"Parameter file not found: {path}"
        ) from None
    except OSError as e:
        raise ParameterValidationError(
            f"Could not read parameter file {path}: {e}", original_exception=e
        ) from e
    except yaml.YAMLError as e:
        raise ParameterValidationError(
            f"Invalid YAML syntax in parameter file {path}: {e}",
            original_exception=e,
        ) from e

    params = parameters_from_mapping(raw)
    logger.info(f"Loaded parameter set from {path}")
    return params
