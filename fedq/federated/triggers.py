"""Auto-federation trigger predicates.

Both predicates are pure. The caller owns the bookkeeping
(``last_trigger_episode``, the reward history).
"""

import math
import numpy as np
from typing import Sequence


def should_federate_by_episodes(
    episode_counts: Sequence[float],
    interval: int,
    last_trigger_episode: float,
) -> bool:
    """True once per crossing of a multiple of ``interval``.

    Compares the interval bucket of the mean episode count with the
    bucket of the last trigger point, so the predicate does not re-fire
    while the mean stays inside the same interval.

    Args:
        episode_counts: Episodes completed by each client.
        interval: Episodes between federation rounds.
        last_trigger_episode: Mean episode count at the last round.

    Returns:
        Whether a federation round is due.

    Example:
        >>> should_federate_by_episodes([100, 100, 100], 100, 0)
        True
        >>> should_federate_by_episodes([100, 100, 100], 100, 100)
        False
    """
    if len(episode_counts) == 0 or interval <= 0:
        return False
    mean_episodes = float(np.mean(episode_counts))
    return math.floor(mean_episodes / interval) > math.floor(last_trigger_episode / interval)


def should_federate_by_performance(
    rewards: Sequence[float],
    window_size: int = 10,
    improvement_threshold: float = 0.01,
    epsilon: float = 1e-8,
) -> bool:
    """True when rewards have plateaued.

    Splits the last ``2 * window_size`` rewards into a previous and a
    recent half and computes
    ``(recent_avg - prev_avg) / (|prev_avg| + epsilon)``.

    Args:
        rewards: Reward history, oldest first.
        window_size: Size of each half.
        improvement_threshold: Improvement at or below this is a plateau.
        epsilon: Stabiliser for a near-zero previous average.

    Returns:
        True on plateau; False when there is not enough data.
    """
    if window_size < 1 or len(rewards) < 2 * window_size:
        return False
    tail = np.asarray(list(rewards)[-2 * window_size:], dtype=np.float64)
    previous_avg = float(tail[:window_size].mean())
    recent_avg = float(tail[window_size:].mean())
    improvement = (recent_avg - previous_avg) / (abs(previous_avg) + epsilon)
    return improvement <= improvement_threshold
