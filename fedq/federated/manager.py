"""Federation round orchestration (FedAvg server side).

Collects an isolated snapshot from every agent, merges them, measures
how far the global model moved since the previous round, and hands the
merged model back to every agent. Agents are only touched through
``export_model`` / ``import_model``, so no agent ever sees a partially
applied update.
"""

import logging
import numpy as np
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Protocol, Sequence

from ..config import FederationConfig
from ..model import Model, copy_model
from .aggregation import (
    Reporter,
    compute_client_deltas,
    federated_average,
    federated_average_weighted,
)
from .delta import DeltaReport, compute_model_delta
from .triggers import should_federate_by_episodes, should_federate_by_performance

logger = logging.getLogger(__name__)


class ModelOwner(Protocol):
    def export_model(self) -> Model: ...

    def import_model(self, model: Model) -> None: ...


@dataclass
class FederationRound:
    """Record of one federation round.

    Attributes:
        round_number: 1-based round index.
        n_clients: Number of merged models.
        n_states: States in the merged model.
        delta: Movement of the global model since the previous round
            (the first round compares against client 0's snapshot).
        client_deltas: L2 distance of each client snapshot to the
            merged model.
        trigger_episode: Mean episode count when the round ran.
        global_model: The merged model.
    """
    round_number: int
    n_clients: int
    n_states: int
    delta: DeltaReport
    client_deltas: List[float] = field(default_factory=list)
    trigger_episode: float = 0.0
    global_model: Model = field(default_factory=dict)


class FederationManager:
    """Decides when to federate and runs federation rounds.

    Attributes:
        config: Federation settings.
        round_number: Completed rounds.
        last_trigger_episode: Mean episode count at the last round.
        history: Every completed FederationRound.
    """

    def __init__(
        self,
        config: Optional[FederationConfig] = None,
        reporter: Optional[Reporter] = None,
    ):
        """Initialize manager.

        Args:
            config: Federation settings.
            reporter: Receives DimensionMismatchWarnings from merges.
        """
        self.config = config or FederationConfig()
        self.config.validate()
        self.reporter = reporter

        self.auto_federate = self.config.auto_federate
        self.round_number = 0
        self.last_trigger_episode = 0.0
        self.history: List[FederationRound] = []
        self.reward_history: Deque[float] = deque(
            maxlen=self.config.reward_history_size
        )
        self._global_model: Optional[Model] = None

    def set_auto_federate(self, enabled: bool) -> None:
        self.auto_federate = bool(enabled)

    def add_reward(self, reward: float) -> None:
        """Record an episode reward for the performance trigger."""
        self.reward_history.append(float(reward))

    def should_federate(self, episode_counts: Sequence[int]) -> bool:
        """Whether the configured strategy calls for a round now.

        Always False while auto-federation is disabled.
        """
        if not self.auto_federate:
            return False
        if self.config.strategy == "episodes":
            return should_federate_by_episodes(
                episode_counts,
                self.config.federation_interval,
                self.last_trigger_episode,
            )
        return should_federate_by_performance(
            self.reward_history,
            self.config.window_size,
            self.config.improvement_threshold,
        )

    def federate(
        self,
        agents: Sequence[ModelOwner],
        episode_counts: Optional[Sequence[int]] = None,
        sample_counts: Optional[Sequence[float]] = None,
    ) -> FederationRound:
        """Run one federation round.

        Args:
            agents: Objects exposing export_model / import_model.
            episode_counts: Episodes per client; updates the trigger point.
            sample_counts: When given, weight clients by these counts.

        Returns:
            FederationRound describing the merge.

        Raises:
            ValueError: If there are no agents.
        """
        if not agents:
            raise ValueError("No agents to federate")

        snapshots = [agent.export_model() for agent in agents]

        if sample_counts is not None:
            global_model = federated_average_weighted(
                snapshots, sample_counts, reporter=self.reporter,
            )
        else:
            global_model = federated_average(snapshots, reporter=self.reporter)

        reference = self._global_model if self._global_model is not None else snapshots[0]
        delta = compute_model_delta(
            reference,
            global_model,
            convergence_threshold=self.config.convergence_threshold,
            changed_epsilon=self.config.changed_epsilon,
            relative_epsilon=self.config.relative_epsilon,
        )
        client_deltas = compute_client_deltas(global_model, snapshots)

        for agent in agents:
            agent.import_model(global_model)

        self.round_number += 1
        if episode_counts is not None and len(episode_counts) > 0:
            self.last_trigger_episode = float(np.mean(episode_counts))
        self._global_model = copy_model(global_model)
        if self.config.strategy == "performance":
            # Fresh window so a plateau is judged on post-merge rewards
            self.reward_history.clear()

        record = FederationRound(
            round_number=self.round_number,
            n_clients=len(agents),
            n_states=len(global_model),
            delta=delta,
            client_deltas=client_deltas,
            trigger_episode=self.last_trigger_episode,
            global_model=global_model,
        )
        self.history.append(record)

        logger.info(
            "Federation round %d: %d clients, %d states, %d changed, "
            "avg delta %.4f, max delta %.4f%s",
            self.round_number, len(agents), delta.total_states,
            delta.states_changed, delta.avg_delta, delta.max_delta,
            " (converged)" if delta.converged else "",
        )
        return record

    @property
    def global_model(self) -> Optional[Model]:
        """Copy of the latest merged model, or None before any round."""
        if self._global_model is None:
            return None
        return copy_model(self._global_model)

    @property
    def converged(self) -> bool:
        """Convergence flag of the latest round (False before any)."""
        return bool(self.history) and self.history[-1].delta.converged

    def reset(self) -> None:
        """Forget all rounds and reward history."""
        self.round_number = 0
        self.last_trigger_episode = 0.0
        self.history.clear()
        self.reward_history.clear()
        self._global_model = None
