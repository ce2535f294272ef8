"""
Memory-model constants.

This module contains the static parameters and bounds of the recallcore
scheduling engine. No runtime configuration or path defaults - pure constants only.
"""
from typing import Tuple

# Default weights 'w_1'..'w_19'.
# Only w_1-w_4 (stability), w_11 (decay rate) and w_17 (difficulty step) are
# read by the engine; the rest are stored so calibrated sets round-trip intact.
DEFAULT_PARAMETERS: Tuple[float, ...] = (
    0.40,  # w_1  initial stability
    1.86,  # w_2  learning stability
    4.93,  # w_3  review stability
    0.94,  # w_4  relearning stability
    0.86,  # w_5
    0.01,  # w_6
    1.49,  # w_7
    0.04,  # w_8
    0.36,  # w_9
    0.86,  # w_10
    0.20,  # w_11 decay rate
    2.50,  # w_12
    0.14,  # w_13
    0.94,  # w_14
    0.16,  # w_15
    0.10,  # w_16
    0.29,  # w_17 difficulty step
    0.34,  # w_18
    3.73,  # w_19
)

PARAMETER_COUNT: int = 19

# Default desired retention rate if not specified elsewhere.
DEFAULT_DESIRED_RETENTION: float = 0.95

# Rating scale (1 = total failure, 10 = perfect).
MIN_RATING: int = 1
MAX_RATING: int = 10
MEAN_RATING: float = 5.5

MIN_DIFFICULTY: float = 1.0
MAX_DIFFICULTY: float = 10.0
INITIAL_DIFFICULTY: float = 5.0

MIN_STABILITY: float = 0.1
LAPSE_STABILITY_FACTOR: float = 0.36

MIN_INTERVAL_DAYS: int = 1
MAX_INTERVAL_DAYS: int = 180

# Stability (days) at which a reviewed card counts as mastered.
MASTERY_STABILITY_DAYS: float = 21.0
