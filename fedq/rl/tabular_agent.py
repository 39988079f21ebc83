"""Tabular Q-learning agent.

Combines:
- A sparse QTable grown lazily as states are visited
- Epsilon-greedy action selection with per-episode decay
- One-step Q-learning (Bellman) updates
- An inference mode that freezes the table and disables exploration
- Value-semantics model export/import for federation
"""

import logging
import math
import numpy as np
from numbers import Real
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..config import AgentConfig
from ..errors import InvalidOperationError
from ..federated.serialization import load_model, save_model
from ..model import Model, QVectorLike
from .policies import greedy_action, select_action, update_q_value
from .q_table import QTable

logger = logging.getLogger(__name__)


class TabularAgent:
    """Epsilon-greedy tabular Q-learning agent.

    The agent exclusively owns its QTable. Models only cross the agent
    boundary as deep copies, so two agents never share storage.

    Attributes:
        config: Hyperparameters (validated at construction).
        epsilon: Current exploration rate.
        q_table: The agent's Q-value store.
    """

    def __init__(
        self,
        config: Optional[AgentConfig] = None,
        seed: Optional[int] = None,
    ):
        """Initialize agent.

        Args:
            config: Agent hyperparameters.
            seed: Random seed for exploration.

        Raises:
            ConfigurationError: If the config is out of range.
        """
        self.config = config or AgentConfig()
        self.config.validate()

        self.rng = np.random.default_rng(seed)
        self.q_table = QTable(self.config.n_actions)
        self.epsilon = self.config.epsilon
        self._inference_mode = False

        # Statistics
        self.update_count = 0

    @property
    def n_actions(self) -> int:
        return self.config.n_actions

    def _check_action(self, action: int) -> None:
        if not 0 <= action < self.config.n_actions:
            raise ValueError(
                f"action {action} outside [0, {self.config.n_actions})"
            )

    def choose_action(self, state: str) -> int:
        """Select an action for a state.

        Training mode initializes unseen states to zeros and acts
        epsilon-greedily. Inference mode acts greedily and leaves the
        table untouched.

        Args:
            state: State key.

        Returns:
            Action index.
        """
        if self._inference_mode:
            return greedy_action(self.q_table.q_values(state))
        q_values = self.q_table.ensure(state)
        return select_action(q_values, self.epsilon, self.rng)

    def learn(
        self,
        state: str,
        action: int,
        reward: float,
        next_state: str,
        done: bool = False,
    ) -> float:
        """Apply one Q-learning update.

        Q(s,a) += alpha * (r + gamma * max_a' Q(s',a') - Q(s,a)).
        When ``done`` is set the bootstrap term is dropped.

        Args:
            state: State the action was taken in.
            action: Action taken.
            reward: Reward received.
            next_state: Resulting state.
            done: Whether next_state is terminal.

        Returns:
            Updated Q(s, a).

        Raises:
            InvalidOperationError: If the agent is in inference mode.
            ValueError: If action is out of range.
        """
        if self._inference_mode:
            raise InvalidOperationError(
                "learn() called while inference mode is active",
                operation="learn", state=state, action=action,
            )
        self._check_action(action)

        row = self.q_table.ensure(state)
        next_row = self.q_table.ensure(next_state)

        current_q = float(row[action])
        max_next_q = 0.0 if done else float(np.max(next_row))
        new_q = update_q_value(
            current_q, reward, max_next_q,
            self.config.alpha, self.config.gamma,
        )
        row[action] = new_q
        self.update_count += 1

        logger.debug("Q-update %s[%d]: %.4f -> %.4f", state, action, current_q, new_q)
        return new_q

    def decay_epsilon(self) -> None:
        """Decay exploration rate, never below epsilon_floor.

        Intended to be called once per episode. No-op in inference mode.
        """
        if self._inference_mode:
            return
        self.epsilon = max(
            self.config.epsilon_floor,
            self.epsilon * self.config.epsilon_decay,
        )

    def get_epsilon(self) -> float:
        return self.epsilon

    def get_q_values(self, state: str) -> np.ndarray:
        """Copy of a state's Q-values (zeros if unseen). Never mutates."""
        return self.q_table.q_values(state)

    def export_model(self) -> Model:
        """Deep copy of the agent's model."""
        return self.q_table.to_model()

    def import_model(self, model: Mapping[str, QVectorLike]) -> None:
        """Replace the agent's model with a deep copy of ``model``.

        Vectors of a different width are zero-padded or truncated to
        this agent's n_actions.
        """
        self.q_table = QTable.from_model(model, self.config.n_actions)

    def set_inference_mode(self, enabled: bool) -> None:
        """Freeze (True) or unfreeze (False) learning and exploration."""
        self._inference_mode = bool(enabled)

    def get_inference_mode(self) -> bool:
        return self._inference_mode

    @property
    def inference_mode(self) -> bool:
        return self._inference_mode

    @property
    def n_states(self) -> int:
        return len(self.q_table)

    def reset(self) -> None:
        """Clear the Q-table and restore the initial epsilon."""
        self.q_table.clear()
        self.epsilon = self.config.epsilon
        self.update_count = 0

    def stats(self) -> Dict[str, Any]:
        """Summary statistics of the agent."""
        return {
            "n_states": self.n_states,
            "epsilon": self.epsilon,
            "updates": self.update_count,
            "inference_mode": self._inference_mode,
        }

    def save_checkpoint(self, path: Union[str, Path]) -> bool:
        """Save model and epsilon to a JSON file."""
        return save_model(
            path,
            self.q_table.to_model(),
            metadata={
                "epsilon": self.epsilon,
                "n_actions": self.config.n_actions,
                "updates": self.update_count,
            },
        )

    def load_checkpoint(self, path: Union[str, Path]) -> bool:
        """Load a checkpoint written by save_checkpoint.

        Returns:
            False (leaving the agent unchanged) if the file is missing
            or invalid.
        """
        data = load_model(path)
        if data is None:
            return False

        epsilon = data.metadata.get("epsilon", self.epsilon)
        updates = data.metadata.get("updates", 0)
        if not _is_finite_number(epsilon) or not _is_finite_number(updates):
            logger.warning(
                "Ignoring checkpoint %s: bad metadata epsilon=%r updates=%r",
                path, epsilon, updates,
            )
            return False

        self.import_model(data.model)
        self.epsilon = float(np.clip(epsilon, self.config.epsilon_floor, 1.0))
        self.update_count = int(updates)
        return True


def _is_finite_number(x: Any) -> bool:
    if not isinstance(x, Real) or isinstance(x, bool):
        return False
    try:
        return math.isfinite(x)
    except OverflowError:
        return False
