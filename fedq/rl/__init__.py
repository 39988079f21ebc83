"""RL module for tabular Q-learning."""

from .q_table import (
    QTable,
)
from .policies import (
    update_q_value,
    td_error,
    greedy_action,
    select_action,
    softmax_select,
)
from .discretize import (
    discretize,
    discretize_state,
)
from .tabular_agent import (
    TabularAgent,
)
from .metrics import (
    AGGREGATORS,
    KPI,
    EpisodeData,
    EpisodeTracker,
    aggregate_episodes,
)
from .train import (
    EpisodeResult,
    EvaluationResult,
    run_episode,
    evaluate_agent,
)

__all__ = [
    "QTable",
    "update_q_value",
    "td_error",
    "greedy_action",
    "select_action",
    "softmax_select",
    "discretize",
    "discretize_state",
    "TabularAgent",
    "AGGREGATORS",
    "KPI",
    "EpisodeData",
    "EpisodeTracker",
    "aggregate_episodes",
    "EpisodeResult",
    "EvaluationResult",
    "run_episode",
    "evaluate_agent",
]
