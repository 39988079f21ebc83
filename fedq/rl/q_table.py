"""Sparse Q-value store keyed by discretized state strings.

Each state maps to a fixed-length float64 vector, one entry per action.
States are inserted only through ``ensure`` (upsert on first access);
plain lookups never grow the table.
"""

import numpy as np
from typing import Iterator, List, Mapping, Optional

from ..model import Model, QVectorLike, copy_model, fit_vector


class QTable:
    """Mapping from state key to a length-``n_actions`` Q-vector.

    Attributes:
        n_actions: Width of every stored vector.
    """

    def __init__(self, n_actions: int):
        self.n_actions = n_actions
        self._table: Model = {}

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, state: object) -> bool:
        return state in self._table

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def states(self) -> List[str]:
        """All known state keys."""
        return list(self._table)

    def ensure(self, state: str) -> np.ndarray:
        """Return the stored vector for a state, inserting zeros if unseen.

        The returned array is the live row; callers inside the agent may
        update it in place.
        """
        row = self._table.get(state)
        if row is None:
            row = np.zeros(self.n_actions, dtype=np.float64)
            self._table[state] = row
        return row

    def get(self, state: str) -> Optional[np.ndarray]:
        """Live row for a state, or None. Never inserts."""
        return self._table.get(state)

    def q_values(self, state: str) -> np.ndarray:
        """Copy of a state's Q-vector (zeros for unseen states)."""
        row = self._table.get(state)
        if row is None:
            return np.zeros(self.n_actions, dtype=np.float64)
        return row.copy()

    def clear(self) -> None:
        """Drop every state."""
        self._table.clear()

    def to_model(self) -> Model:
        """Isolated deep copy of the table contents."""
        return copy_model(self._table)

    @classmethod
    def from_model(
        cls,
        model: Mapping[str, QVectorLike],
        n_actions: int,
    ) -> "QTable":
        """Build a table from a model, fitting every vector to n_actions."""
        table = cls(n_actions)
        for state, values in model.items():
            table._table[str(state)] = fit_vector(values, n_actions)
        return table
