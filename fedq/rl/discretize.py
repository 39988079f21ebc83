"""Continuous-to-discrete state key helpers."""

import numpy as np
from typing import Sequence


def discretize(value: float, bins: int, low: float, high: float) -> int:
    """Map a continuous value to a bin index in [0, bins - 1].

    Values outside [low, high] are clipped to the edge bins.

    Example:
        >>> discretize(0.5, 4, 0.0, 1.0)
        2
    """
    if bins < 1:
        raise ValueError(f"bins must be >= 1, got {bins}")
    if high <= low:
        raise ValueError(f"high ({high}) must exceed low ({low})")
    normalized = (value - low) / (high - low)
    return int(np.clip(np.floor(normalized * bins), 0, bins - 1))


def discretize_state(
    values: Sequence[float],
    bins: Sequence[int],
    lows: Sequence[float],
    highs: Sequence[float],
) -> str:
    """Discretize each component and join the bin indices into a state key.

    Example:
        >>> discretize_state([0.1, 0.9], [2, 2], [0, 0], [1, 1])
        '0,1'
    """
    if not (len(values) == len(bins) == len(lows) == len(highs)):
        raise ValueError("values, bins, lows and highs must have equal length")
    return ",".join(
        str(discretize(v, b, lo, hi))
        for v, b, lo, hi in zip(values, bins, lows, highs)
    )
