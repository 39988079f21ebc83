"""Pure Q-learning update and action-selection rules.

All functions are side-effect free apart from drawing from the
supplied random generator.
"""

import numpy as np
from typing import Optional, Sequence, Union

ArrayLike = Union[np.ndarray, Sequence[float]]


def td_error(
    reward: float,
    current_q: float,
    max_next_q: float,
    gamma: float,
) -> float:
    """Temporal-difference error: r + gamma * max_a' Q(s',a') - Q(s,a)."""
    return reward + gamma * max_next_q - current_q


def update_q_value(
    current_q: float,
    reward: float,
    max_next_q: float,
    alpha: float,
    gamma: float,
) -> float:
    """Q-learning update rule.

    Q(s,a) <- Q(s,a) + alpha * [r + gamma * max_a' Q(s',a') - Q(s,a)]

    Args:
        current_q: Current Q-value of the state-action pair.
        reward: Received reward.
        max_next_q: Maximum Q-value of the next state.
        alpha: Learning rate.
        gamma: Discount factor.

    Returns:
        Updated Q-value.
    """
    return current_q + alpha * td_error(reward, current_q, max_next_q, gamma)


def greedy_action(q_values: ArrayLike) -> int:
    """Index of the largest Q-value; ties go to the lowest index."""
    # np.argmax returns the first occurrence of the maximum
    return int(np.argmax(np.asarray(q_values, dtype=np.float64)))


def select_action(
    q_values: ArrayLike,
    epsilon: float,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """Epsilon-greedy action selection.

    Args:
        q_values: Q-values for all actions in the current state.
        epsilon: Probability of taking a uniformly random action.
        rng: Random generator (a fresh default generator if omitted).

    Returns:
        Selected action index.
    """
    rng = rng if rng is not None else np.random.default_rng()
    n_actions = len(q_values)
    if epsilon > 0 and rng.random() < epsilon:
        return int(rng.integers(n_actions))
    return greedy_action(q_values)


def softmax_select(
    q_values: ArrayLike,
    temperature: float = 1.0,
    rng: Optional[np.random.Generator] = None,
) -> int:
    """Boltzmann action selection: P(a) proportional to exp(Q(s,a) / tau).

    Args:
        q_values: Q-values for all actions.
        temperature: Temperature tau (> 0). Lower is greedier.
        rng: Random generator.

    Returns:
        Selected action index.

    Raises:
        ValueError: If temperature is not positive.
    """
    if temperature <= 0:
        raise ValueError(f"temperature must be positive, got {temperature}")
    rng = rng if rng is not None else np.random.default_rng()
    q = np.asarray(q_values, dtype=np.float64) / temperature
    # Shift by the max for numerical stability
    exp = np.exp(q - np.max(q))
    probs = exp / exp.sum()
    return int(rng.choice(len(probs), p=probs))
