"""Model delta and convergence detection between federation rounds."""

import numpy as np
from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping

from ..model import QVectorLike
from .aggregation import union_states

CONVERGENCE_THRESHOLD = 0.01
CHANGED_EPSILON = 1e-9
RELATIVE_EPSILON = 1e-8


@dataclass
class DeltaReport:
    """Summary of how far a model moved between two snapshots.

    Attributes:
        total_delta: Sum of |old - new| over all (state, action) pairs.
        avg_delta: total_delta / max(1, number of pairs).
        max_delta: Largest single |old - new|.
        states_changed: States where any action moved more than the
            changed epsilon.
        total_states: Size of the union of both models' states.
        relative_delta: avg_delta / (mean |old| + epsilon).
        converged: avg_delta < convergence threshold.
    """
    total_delta: float = 0.0
    avg_delta: float = 0.0
    max_delta: float = 0.0
    states_changed: int = 0
    total_states: int = 0
    relative_delta: float = 0.0
    converged: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_model_delta(
    old_model: Mapping[str, QVectorLike],
    new_model: Mapping[str, QVectorLike],
    convergence_threshold: float = CONVERGENCE_THRESHOLD,
    changed_epsilon: float = CHANGED_EPSILON,
    relative_epsilon: float = RELATIVE_EPSILON,
) -> DeltaReport:
    """Compare two models over the union of their states.

    A state (or trailing action) missing on one side is treated as 0.

    Args:
        old_model: Earlier snapshot.
        new_model: Later snapshot.
        convergence_threshold: avg_delta below this sets ``converged``.
        changed_epsilon: Noise floor for counting a state as changed.
        relative_epsilon: Stabiliser for relative_delta.

    Returns:
        DeltaReport.
    """
    states = union_states([old_model, new_model])

    total = 0.0
    max_delta = 0.0
    n_pairs = 0
    abs_old_sum = 0.0
    changed = 0

    for state in states:
        old = old_model.get(state)
        new = new_model.get(state)
        old_vec = np.zeros(0) if old is None else np.asarray(old, dtype=np.float64).ravel()
        new_vec = np.zeros(0) if new is None else np.asarray(new, dtype=np.float64).ravel()

        width = max(len(old_vec), len(new_vec))
        if width == 0:
            continue
        old_full = np.zeros(width)
        new_full = np.zeros(width)
        old_full[:len(old_vec)] = old_vec
        new_full[:len(new_vec)] = new_vec

        diff = np.abs(old_full - new_full)
        total += float(diff.sum())
        max_delta = max(max_delta, float(diff.max()))
        n_pairs += width
        abs_old_sum += float(np.abs(old_full).sum())
        if np.any(diff > changed_epsilon):
            changed += 1

    avg_delta = total / max(1, n_pairs)
    avg_abs_old = abs_old_sum / max(1, n_pairs)

    return DeltaReport(
        total_delta=total,
        avg_delta=avg_delta,
        max_delta=max_delta,
        states_changed=changed,
        total_states=len(states),
        relative_delta=avg_delta / (avg_abs_old + relative_epsilon),
        converged=avg_delta < convergence_threshold,
    )
