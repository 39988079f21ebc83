"""Federated averaging (FedAvg) over tabular Q-models.

theta_global[s][a] = sum_k w_k * theta_k[s][a]

The merged model covers the union of every client's states. A client
that never visited a state contributes a zero vector for it: absent
data is averaged in as zero value, never excluded.

All functions are pure. Inputs are read, never modified, and the
output model is freshly allocated.
"""

import logging
import warnings
import numpy as np
from typing import Callable, List, Mapping, Optional, Sequence

from ..errors import DimensionMismatchWarning
from ..model import Model, QVectorLike

logger = logging.getLogger(__name__)

Reporter = Callable[[DimensionMismatchWarning], None]


def warn_reporter(warning: DimensionMismatchWarning) -> None:
    """Default reporter: emit through the warnings module."""
    warnings.warn(warning, stacklevel=3)


def union_states(models: Sequence[Mapping[str, QVectorLike]]) -> List[str]:
    """Every state key appearing in any model, in first-seen order."""
    seen = {}
    for model in models:
        for state in model:
            seen.setdefault(state, None)
    return list(seen)


def _vector(model: Mapping[str, QVectorLike], state: str) -> Optional[np.ndarray]:
    values = model.get(state)
    if values is None:
        return None
    return np.asarray(values, dtype=np.float64).ravel()


def _padded(vec: Optional[np.ndarray], width: int) -> np.ndarray:
    out = np.zeros(width, dtype=np.float64)
    if vec is not None:
        n = min(width, len(vec))
        out[:n] = vec[:n]
    return out


def normalize_weights(weights: Sequence[float], n_models: int) -> np.ndarray:
    """Validate per-client weights and return them as an array.

    Raises:
        ValueError: If the length is wrong or any weight is negative
            or non-finite.
    """
    w = np.asarray(weights, dtype=np.float64).ravel()
    if len(w) != n_models:
        raise ValueError(
            f"expected {n_models} weights, got {len(w)}"
        )
    if not np.all(np.isfinite(w)) or np.any(w < 0):
        raise ValueError("weights must be finite and non-negative")
    return w


def federated_average(
    models: Sequence[Mapping[str, QVectorLike]],
    weights: Optional[Sequence[float]] = None,
    reporter: Optional[Reporter] = None,
) -> Model:
    """Merge client models into one global model.

    Args:
        models: One model per client.
        weights: Per-client weights (default uniform 1/n). Supplied
            weights are used as given; federated_average_weighted
            normalizes sample counts before calling this.
        reporter: Receives a DimensionMismatchWarning when the models'
            vector widths differ. Defaults to ``warnings.warn``.

    Returns:
        New model containing every state of every input model.

    Raises:
        ValueError: If ``models`` is empty or the weights are invalid.
    """
    if not models:
        raise ValueError("No models to aggregate")

    n = len(models)
    w = np.full(n, 1.0 / n) if weights is None else normalize_weights(weights, n)

    states = union_states(models)

    widths = {
        len(np.asarray(v).ravel())
        for model in models for v in model.values()
    }
    width = max(widths, default=0)
    if len(widths) > 1:
        warning = DimensionMismatchWarning(
            "merging Q-vectors of different widths; padding with zeros",
            expected=width, found=sorted(widths),
        )
        logger.warning("%s: widths %s -> %d", warning.message, sorted(widths), width)
        (reporter or warn_reporter)(warning)

    merged: Model = {}
    for state in states:
        acc = np.zeros(width, dtype=np.float64)
        for model, weight in zip(models, w):
            vec = _vector(model, state)
            if vec is None:
                continue
            acc += weight * _padded(vec, width)
        merged[state] = acc

    logger.debug("Merged %d models into %d states", n, len(merged))
    return merged


def federated_average_weighted(
    models: Sequence[Mapping[str, QVectorLike]],
    sample_counts: Sequence[float],
    reporter: Optional[Reporter] = None,
) -> Model:
    """FedAvg with weights proportional to each client's sample count.

    Args:
        models: One model per client.
        sample_counts: Non-negative counts; at least one must be > 0.
        reporter: See federated_average.

    Returns:
        Merged model.

    Raises:
        ValueError: On negative counts, all-zero counts, or a length
            mismatch.
    """
    counts = normalize_weights(sample_counts, len(models))
    total = counts.sum()
    if total <= 0:
        raise ValueError("at least one sample count must be positive")
    return federated_average(models, counts / total, reporter=reporter)


def compute_client_deltas(
    global_model: Mapping[str, QVectorLike],
    client_models: Sequence[Mapping[str, QVectorLike]],
) -> List[float]:
    """L2 distance between the global model and each client model.

    delta_k = ||theta_global - theta_k||_2 over the union of states,
    with missing states and shorter vectors padded with zeros.
    """
    deltas = []
    for model in client_models:
        sum_sq = 0.0
        for state in union_states([global_model, model]):
            g = _vector(global_model, state)
            c = _vector(model, state)
            width = max(len(g) if g is not None else 0,
                        len(c) if c is not None else 0)
            diff = _padded(g, width) - _padded(c, width)
            sum_sq += float(np.dot(diff, diff))
        deltas.append(float(np.sqrt(sum_sq)))
    return deltas
