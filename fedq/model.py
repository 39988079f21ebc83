"""Shared model helpers used by both the agent and the federation engine.

A model is a plain ``dict`` from state key to a float64 Q-vector. These
helpers copy and reshape models without ever aliasing the input arrays.
"""

import numpy as np
from typing import Dict, Mapping, Sequence, Union

# state key -> Q-vector
Model = Dict[str, np.ndarray]

QVectorLike = Union[np.ndarray, Sequence[float]]


def fit_vector(values: QVectorLike, n_actions: int) -> np.ndarray:
    """Copy a Q-vector to float64, zero-padding or truncating to n_actions."""
    vec = np.asarray(values, dtype=np.float64).ravel()
    if len(vec) == n_actions:
        return vec.copy()
    out = np.zeros(n_actions, dtype=np.float64)
    n = min(n_actions, len(vec))
    out[:n] = vec[:n]
    return out


def copy_model(model: Mapping[str, QVectorLike]) -> Model:
    """Deep-copy a model so the result shares no storage with the input."""
    return {
        str(state): np.array(values, dtype=np.float64, copy=True).ravel()
        for state, values in model.items()
    }


def model_width(model: Mapping[str, QVectorLike]) -> int:
    """Widest Q-vector in a model (0 for an empty model)."""
    return max((len(np.asarray(v).ravel()) for v in model.values()), default=0)


def models_equal(a: Mapping[str, QVectorLike], b: Mapping[str, QVectorLike],
                 atol: float = 1e-9) -> bool:
    """Same key set and element-wise equal vectors within atol."""
    if set(a) != set(b):
        return False
    for state in a:
        va = np.asarray(a[state], dtype=np.float64).ravel()
        vb = np.asarray(b[state], dtype=np.float64).ravel()
        if va.shape != vb.shape or not np.allclose(va, vb, rtol=0.0, atol=atol):
            return False
    return True
