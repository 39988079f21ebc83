"""Episode KPI tracking.

Rewards shape learning; KPIs measure success. A KPI is a small
strategy: ``compute(state) -> value`` per step and an aggregator that
reduces the per-step values to one number per episode.
"""

import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

logger = logging.getLogger(__name__)

Aggregator = Callable[[Sequence[float]], float]


def _percentage(values: Sequence[float]) -> float:
    return float(np.mean(values)) * 100.0 if len(values) else 0.0


AGGREGATORS: Dict[str, Aggregator] = {
    "sum": lambda v: float(np.sum(v)) if len(v) else 0.0,
    "avg": lambda v: float(np.mean(v)) if len(v) else 0.0,
    "max": lambda v: float(np.max(v)) if len(v) else 0.0,
    "min": lambda v: float(np.min(v)) if len(v) else float("inf"),
    "last": lambda v: float(v[-1]) if len(v) else 0.0,
    "first": lambda v: float(v[0]) if len(v) else 0.0,
    "count": lambda v: float(np.count_nonzero(v)),
    "percentage": _percentage,
}


@dataclass
class KPI:
    """Key performance indicator definition.

    Attributes:
        compute: Maps an environment state to a per-step value.
        aggregate: Aggregator name from AGGREGATORS, or a callable.
        display: Human-readable label.
    """
    compute: Callable[[Any], float]
    aggregate: Union[str, Aggregator] = "sum"
    display: str = ""

    def aggregator(self) -> Aggregator:
        if callable(self.aggregate):
            return self.aggregate
        return AGGREGATORS[self.aggregate]


@dataclass
class EpisodeData:
    """Per-episode record built up by EpisodeTracker."""
    steps: int = 0
    total_reward: float = 0.0
    kpi_values: Dict[str, List[float]] = field(default_factory=dict)
    kpis: Dict[str, float] = field(default_factory=dict)
    success: bool = False


class EpisodeTracker:
    """Collects step-level KPI values and finalizes them per episode.

    Attributes:
        kpis: KPI definitions by name.
        is_successful: Optional ``(final_state, data) -> bool``. Default
            success is a positive total reward.
    """

    def __init__(
        self,
        kpis: Optional[Dict[str, KPI]] = None,
        is_successful: Optional[Callable[[Any, EpisodeData], bool]] = None,
    ):
        self.kpis = dict(kpis or {})
        self.is_successful = is_successful

        for name, kpi in self.kpis.items():
            if not callable(kpi.compute):
                raise ValueError(f"KPI '{name}': compute must be callable")
            if not callable(kpi.aggregate) and kpi.aggregate not in AGGREGATORS:
                raise ValueError(
                    f"KPI '{name}': unknown aggregator '{kpi.aggregate}'"
                )

    def init(self) -> EpisodeData:
        return EpisodeData(kpi_values={name: [] for name in self.kpis})

    def step(
        self,
        data: EpisodeData,
        state: Any,
        action: int,
        reward: float,
    ) -> EpisodeData:
        """Record one step. A failing KPI records 0 for that step."""
        for name, kpi in self.kpis.items():
            try:
                value = float(kpi.compute(state))
            except Exception:
                logger.exception("Error computing KPI '%s'", name)
                value = 0.0
            data.kpi_values.setdefault(name, []).append(value)

        data.steps += 1
        data.total_reward += reward
        return data

    def finalize(self, data: EpisodeData, final_state: Any) -> EpisodeData:
        """Aggregate KPI values and decide success."""
        for name, kpi in self.kpis.items():
            data.kpis[name] = kpi.aggregator()(data.kpi_values.get(name, []))

        if self.is_successful is None:
            data.success = data.total_reward > 0
        else:
            try:
                data.success = bool(self.is_successful(final_state, data))
            except Exception:
                logger.exception("Error in success predicate")
                data.success = False
        return data


def aggregate_episodes(episodes: Sequence[EpisodeData]) -> Dict[str, Any]:
    """Summary statistics across finalized episodes.

    Returns:
        Dict with episodes, success_count, success_rate, avg_reward,
        avg_steps and per-KPI avg/min/max. Empty dict for no episodes.
    """
    if not episodes:
        return {}

    n = len(episodes)
    success_count = sum(1 for e in episodes if e.success)
    result: Dict[str, Any] = {
        "episodes": n,
        "success_count": success_count,
        "success_rate": success_count / n,
        "avg_reward": float(np.mean([e.total_reward for e in episodes])),
        "avg_steps": float(np.mean([e.steps for e in episodes])),
        "kpis": {},
    }

    for name in episodes[0].kpis:
        values = np.array([e.kpis.get(name, 0.0) for e in episodes])
        result["kpis"][name] = {
            "avg": float(values.mean()),
            "min": float(values.min()),
            "max": float(values.max()),
        }
    return result
