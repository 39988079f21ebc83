"""Federated training loop for FedQ.

Implements the procedure where:
1. N clients each run one local episode per sweep
2. The manager checks its trigger (episode interval or reward plateau)
3. On a trigger, client Q-tables are merged and redistributed
4. A final round at the end leaves every client on the global model
"""

import time
import numpy as np
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..config import FedQConfig
from ..envs.base import Environment
from ..model import Model
from ..rl.metrics import EpisodeTracker
from ..rl.train import EvaluationResult, evaluate_agent
from .client import FederatedClient
from .manager import FederationManager, FederationRound


@dataclass
class TrainingResult:
    """Result from a full federated training run.

    Attributes:
        n_episodes: Episodes run by each client.
        client_rewards: Per-client episode reward histories.
        rounds: Every federation round, in order.
        global_model: Model after the last round.
        converged: Convergence flag of the last round.
        evaluation: Greedy evaluation of the global model (if run).
        runtime_seconds: Wall-clock training time.
    """
    n_episodes: int = 0
    client_rewards: List[List[float]] = field(default_factory=list)
    rounds: List[FederationRound] = field(default_factory=list)
    global_model: Model = field(default_factory=dict)
    converged: bool = False
    evaluation: Optional[EvaluationResult] = None
    runtime_seconds: float = 0.0

    @property
    def delta_history(self) -> List[float]:
        """avg_delta of each round."""
        return [r.delta.avg_delta for r in self.rounds]


class FederatedTrainer:
    """Trainer for federated tabular Q-learning.

    Orchestrates clients, the federation manager, and evaluation.
    """

    def __init__(
        self,
        env_factory: Callable[[], Environment],
        config: Optional[FedQConfig] = None,
        tracker: Optional[EpisodeTracker] = None,
        weighted: bool = False,
    ):
        """Initialize trainer.

        Args:
            env_factory: Builds one environment per client (and one for
                evaluation).
            config: Configuration.
            tracker: KPI tracker shared by clients and evaluation.
            weighted: Weight clients by transitions seen instead of
                uniformly.
        """
        self.config = config or FedQConfig()
        self.config.validate()
        self.env_factory = env_factory
        self.tracker = tracker
        self.weighted = weighted

        training = self.config.training
        self.clients = [
            FederatedClient(
                client_id=f"client-{i}",
                env=env_factory(),
                agent_config=self.config.agent,
                max_steps=training.max_steps,
                tracker=tracker,
                seed=training.seed + i,
            )
            for i in range(training.n_clients)
        ]
        self.manager = FederationManager(self.config.federation)

    def episode_counts(self) -> List[int]:
        return [c.episode_count for c in self.clients]

    def federate(self) -> FederationRound:
        """Run a federation round across all clients now."""
        sample_counts = [c.data_size for c in self.clients] if self.weighted else None
        if sample_counts is not None and sum(sample_counts) == 0:
            sample_counts = None
        return self.manager.federate(
            [c.agent for c in self.clients],
            episode_counts=self.episode_counts(),
            sample_counts=sample_counts,
        )

    def train(
        self,
        n_episodes: Optional[int] = None,
        evaluate: bool = True,
        verbose: bool = True,
    ) -> TrainingResult:
        """Run the federated training loop.

        Args:
            n_episodes: Episodes per client (overrides config).
            evaluate: Evaluate the final global model greedily.
            verbose: Whether to print progress.

        Returns:
            TrainingResult.
        """
        if n_episodes is None:
            n_episodes = self.config.training.n_episodes
        start_time = time.time()

        for episode in range(n_episodes):
            sweep = [client.run_episode().total_reward for client in self.clients]
            self.manager.add_reward(float(np.mean(sweep)))

            if self.manager.should_federate(self.episode_counts()):
                record = self.federate()
                if verbose:
                    print(
                        f"Episode {episode + 1}/{n_episodes}: "
                        f"Round {record.round_number}  "
                        f"States={record.n_states}  "
                        f"Δavg={record.delta.avg_delta:.4f}  "
                        f"Δmax={record.delta.max_delta:.4f}"
                        f"{'  converged' if record.delta.converged else ''}"
                    )

        final = self.federate()
        if verbose:
            print(
                f"Final round {final.round_number}: "
                f"States={final.n_states}  Δavg={final.delta.avg_delta:.4f}"
            )

        evaluation = None
        if evaluate:
            evaluation = evaluate_agent(
                self.clients[0].agent,
                self.env_factory(),
                n_episodes=self.config.training.eval_episodes,
                max_steps=self.config.training.max_steps,
                tracker=self.tracker,
            )
            if verbose:
                print(
                    f"Evaluation: reward={evaluation.avg_reward:.2f}"
                    f"±{evaluation.std_reward:.2f}  "
                    f"success={evaluation.success_rate:.0%}"
                )

        return TrainingResult(
            n_episodes=n_episodes,
            client_rewards=[list(c.episode_rewards) for c in self.clients],
            rounds=list(self.manager.history),
            global_model=final.global_model,
            converged=final.delta.converged,
            evaluation=evaluation,
            runtime_seconds=time.time() - start_time,
        )


def train_federated(
    env_factory: Callable[[], Environment],
    n_episodes: int = 50,
    config: Optional[FedQConfig] = None,
    verbose: bool = True,
) -> TrainingResult:
    """Convenience function for federated training.

    Args:
        env_factory: Builds one environment per client.
        n_episodes: Episodes per client.
        config: Configuration.
        verbose: Print progress.

    Returns:
        TrainingResult.
    """
    trainer = FederatedTrainer(env_factory, config)
    return trainer.train(n_episodes=n_episodes, verbose=verbose)
