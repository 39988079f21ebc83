"""Federated client for tabular FedQ.

Each client:
1. Owns one TabularAgent and one environment instance
2. Runs episodes locally, learning from its own transitions
3. Exports an isolated snapshot of its Q-table for aggregation
4. Replaces its Q-table with the merged global model afterwards

Only Q-tables leave the client; trajectories stay local.
"""

from typing import List, Mapping, Optional

from ..config import AgentConfig
from ..envs.base import Environment
from ..errors import ConfigurationError
from ..model import Model, QVectorLike
from ..rl.metrics import EpisodeTracker
from ..rl.tabular_agent import TabularAgent
from ..rl.train import EpisodeResult, run_episode


class FederatedClient:
    """One participant in federated training.

    Attributes:
        client_id: Unique identifier.
        agent: Local agent.
        env: Local environment.
        max_steps: Step cap per episode.
        episode_rewards: Total reward of every completed episode.
    """

    def __init__(
        self,
        client_id: str,
        env: Environment,
        agent_config: Optional[AgentConfig] = None,
        max_steps: int = 100,
        tracker: Optional[EpisodeTracker] = None,
        seed: Optional[int] = None,
    ):
        """Initialize client.

        Args:
            client_id: Unique client identifier.
            env: Environment owned by this client.
            agent_config: Hyperparameters; n_actions defaults to the
                environment's action count when not given.
            max_steps: Step cap per episode.
            tracker: KPI tracker for local episodes.
            seed: Random seed for the agent.
        """
        self.client_id = client_id
        self.env = env
        self.max_steps = max_steps
        self.tracker = tracker

        if agent_config is None:
            agent_config = AgentConfig(n_actions=env.n_actions)
        elif agent_config.n_actions != getattr(env, "n_actions", agent_config.n_actions):
            raise ConfigurationError(
                "agent n_actions does not match the environment",
                field="n_actions", value=agent_config.n_actions,
                env_actions=env.n_actions, client_id=client_id,
            )
        self.agent = TabularAgent(config=agent_config, seed=seed)

        self.episode_rewards: List[float] = []
        self.total_steps = 0
        self.success_count = 0

    def run_episode(self) -> EpisodeResult:
        """Run and learn from one local episode."""
        result = run_episode(
            self.agent, self.env,
            max_steps=self.max_steps,
            tracker=self.tracker,
        )
        self.episode_rewards.append(result.total_reward)
        self.total_steps += result.steps
        self.success_count += int(result.success)
        return result

    def train(self, n_episodes: int) -> List[EpisodeResult]:
        """Run several local episodes."""
        return [self.run_episode() for _ in range(n_episodes)]

    def export_model(self) -> Model:
        """Snapshot of the local Q-table (deep copy)."""
        return self.agent.export_model()

    def receive_global_model(self, model: Mapping[str, QVectorLike]) -> None:
        """Replace the local Q-table with the merged global model."""
        self.agent.import_model(model)

    @property
    def episode_count(self) -> int:
        return len(self.episode_rewards)

    @property
    def data_size(self) -> int:
        """Number of local transitions learned from (FedAvg weight)."""
        return self.total_steps

    def stats(self) -> dict:
        """Local training statistics."""
        recent = self.episode_rewards[-10:]
        return {
            "client_id": self.client_id,
            "episodes": self.episode_count,
            "steps": self.total_steps,
            "successes": self.success_count,
            "recent_avg_reward": sum(recent) / len(recent) if recent else 0.0,
            "epsilon": self.agent.epsilon,
            "n_states": self.agent.n_states,
        }
