"""Configuration dataclasses for FedQ."""

import json
from dataclasses import dataclass, field, asdict
from numbers import Integral
from pathlib import Path
from typing import Literal, Dict, Any, Union

from .errors import ConfigurationError


# Human-readable federation strategy labels
STRATEGY_LABELS = {
    "episodes": "Every N mean episodes",
    "performance": "On reward plateau",
}


@dataclass
class AgentConfig:
    """Hyperparameters for a tabular Q-learning agent.

    Attributes:
        alpha: Learning rate, in (0, 1].
        gamma: Discount factor, in [0, 1].
        epsilon: Initial exploration rate, in [0, 1].
        epsilon_decay: Multiplicative decay per episode, in (0, 1].
        epsilon_floor: Lower bound for epsilon, in [0, epsilon].
        n_actions: Size of the discrete action space (>= 1).
    """
    alpha: float = 0.1
    gamma: float = 0.95
    epsilon: float = 0.2
    epsilon_decay: float = 0.995
    epsilon_floor: float = 0.001
    n_actions: int = 2

    def validate(self) -> None:
        """Raise ConfigurationError on out-of-range hyperparameters.

        Values are never clamped: a bad config fails at construction.
        """
        if not isinstance(self.n_actions, Integral) or self.n_actions < 1:
            raise ConfigurationError(
                "n_actions must be an integer >= 1",
                field="n_actions", value=self.n_actions,
            )
        if not 0.0 <= self.epsilon <= 1.0:
            raise ConfigurationError(
                "epsilon must lie in [0, 1]",
                field="epsilon", value=self.epsilon,
            )
        if not 0.0 <= self.epsilon_floor <= self.epsilon:
            raise ConfigurationError(
                "epsilon_floor must lie in [0, epsilon]",
                field="epsilon_floor", value=self.epsilon_floor,
                epsilon=self.epsilon,
            )
        if not 0.0 < self.epsilon_decay <= 1.0:
            raise ConfigurationError(
                "epsilon_decay must lie in (0, 1]",
                field="epsilon_decay", value=self.epsilon_decay,
            )
        if not 0.0 < self.alpha <= 1.0:
            raise ConfigurationError(
                "alpha must lie in (0, 1]",
                field="alpha", value=self.alpha,
            )
        if not 0.0 <= self.gamma <= 1.0:
            raise ConfigurationError(
                "gamma must lie in [0, 1]",
                field="gamma", value=self.gamma,
            )


@dataclass
class FederationConfig:
    """Configuration for federation rounds and convergence tracking.

    Attributes:
        convergence_threshold: avg_delta below this means converged.
        changed_epsilon: Per-action difference above which a state
            counts as changed.
        relative_epsilon: Stabiliser in relative_delta's denominator.
        federation_interval: Mean episodes between episode-based rounds.
        strategy: "episodes" or "performance".
        auto_federate: Whether should_federate may return True at all.
        window_size: Reward window for the performance trigger.
        improvement_threshold: Relative improvement at or below which
            rewards are considered to have plateaued.
        reward_history_size: Max rewards kept for the performance trigger.
    """
    convergence_threshold: float = 0.01
    changed_epsilon: float = 1e-9
    relative_epsilon: float = 1e-8
    federation_interval: int = 100
    strategy: Literal["episodes", "performance"] = "episodes"
    auto_federate: bool = False
    window_size: int = 10
    improvement_threshold: float = 0.01
    reward_history_size: int = 1000

    def validate(self) -> None:
        """Raise ConfigurationError on unusable federation settings."""
        if self.strategy not in STRATEGY_LABELS:
            raise ConfigurationError(
                "unknown federation strategy",
                field="strategy", value=self.strategy,
                allowed=sorted(STRATEGY_LABELS),
            )
        if self.federation_interval < 1:
            raise ConfigurationError(
                "federation_interval must be >= 1",
                field="federation_interval", value=self.federation_interval,
            )
        if self.window_size < 1:
            raise ConfigurationError(
                "window_size must be >= 1",
                field="window_size", value=self.window_size,
            )
        if self.convergence_threshold < 0:
            raise ConfigurationError(
                "convergence_threshold must be non-negative",
                field="convergence_threshold",
                value=self.convergence_threshold,
            )


@dataclass
class TrainingConfig:
    """Configuration for the federated training loop.

    Attributes:
        n_clients: Number of independent agents.
        n_episodes: Episodes each client runs.
        max_steps: Step cap per episode.
        eval_episodes: Greedy episodes used for evaluation.
        seed: Base random seed (client i uses seed + i).
        output_dir: Directory for saved models.
    """
    n_clients: int = 3
    n_episodes: int = 50
    max_steps: int = 100
    eval_episodes: int = 10
    seed: int = 42
    output_dir: str = "./outputs"


@dataclass
class FedQConfig:
    """Master configuration for FedQ.

    Combines all sub-configurations into a single object.
    """
    agent: AgentConfig = field(default_factory=AgentConfig)
    federation: FederationConfig = field(default_factory=FederationConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)

    def validate(self) -> None:
        """Validate every sub-configuration."""
        self.agent.validate()
        self.federation.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to nested dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FedQConfig":
        """Create config from dictionary."""
        try:
            return cls(
                agent=AgentConfig(**d.get("agent", {})),
                federation=FederationConfig(**d.get("federation", {})),
                training=TrainingConfig(**d.get("training", {})),
            )
        except TypeError as exc:
            raise ConfigurationError(
                "unknown configuration key", detail=str(exc),
            ) from exc

    def to_json(self, path: Union[str, Path]) -> None:
        """Write config as JSON."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "FedQConfig":
        """Load config from a JSON file written by to_json."""
        with open(path) as f:
            return cls.from_dict(json.load(f))
