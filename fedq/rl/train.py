"""Episode loop and greedy evaluation for a single tabular agent.

One episode:
1. Reset the environment and key the state
2. choose_action -> env.step -> learn, until done or max_steps
3. Decay epsilon once at the end of the episode
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

from ..envs.base import Environment
from .metrics import EpisodeData, EpisodeTracker, aggregate_episodes
from .tabular_agent import TabularAgent


@dataclass
class EpisodeResult:
    """Result from a single episode.

    Attributes:
        total_reward: Sum of rewards.
        steps: Number of environment steps.
        done: Whether the environment signalled termination.
        success: Tracker's success verdict.
        kpis: Aggregated KPI values.
    """
    total_reward: float = 0.0
    steps: int = 0
    done: bool = False
    success: bool = False
    kpis: dict = field(default_factory=dict)


@dataclass
class EvaluationResult:
    """Greedy-policy evaluation summary.

    Attributes:
        episodes: Per-episode results.
        avg_reward: Mean episode reward.
        std_reward: Population standard deviation of episode reward.
        success_rate: Fraction of successful episodes.
        consistency: max(0, 1 - std/|avg|); std/|avg| counts as 0
            when |avg| <= 0.01.
        summary: aggregate_episodes output (KPI statistics).
    """
    episodes: List[EpisodeResult] = field(default_factory=list)
    avg_reward: float = 0.0
    std_reward: float = 0.0
    success_rate: float = 0.0
    consistency: float = 0.0
    summary: dict = field(default_factory=dict)


def run_episode(
    agent: TabularAgent,
    env: Environment,
    max_steps: int = 100,
    tracker: Optional[EpisodeTracker] = None,
    learn: bool = True,
) -> EpisodeResult:
    """Run one episode, learning from each transition.

    Args:
        agent: Agent to act (and learn, unless ``learn`` is False).
        env: Environment.
        max_steps: Step cap.
        tracker: KPI tracker (default: reward-based success only).
        learn: Apply Q-updates and decay epsilon at the end.

    Returns:
        EpisodeResult.
    """
    tracker = tracker or EpisodeTracker()
    data = tracker.init()

    state = env.reset()
    key = env.get_state_string(state)
    done = False

    for _ in range(max_steps):
        action = agent.choose_action(key)
        state, reward, done = env.step(state, action)
        next_key = env.get_state_string(state)

        if learn:
            agent.learn(key, action, reward, next_key, done=done)
        tracker.step(data, state, action, reward)

        key = next_key
        if done:
            break

    tracker.finalize(data, state)
    if learn:
        agent.decay_epsilon()

    return _to_result(data, done)


def _to_result(data: EpisodeData, done: bool) -> EpisodeResult:
    return EpisodeResult(
        total_reward=data.total_reward,
        steps=data.steps,
        done=done,
        success=data.success,
        kpis=dict(data.kpis),
    )


def evaluate_agent(
    agent: TabularAgent,
    env: Environment,
    n_episodes: int = 10,
    max_steps: int = 100,
    tracker: Optional[EpisodeTracker] = None,
) -> EvaluationResult:
    """Evaluate the greedy policy without touching the Q-table.

    The agent is switched to inference mode for the run and restored
    to its previous mode afterwards.
    """
    tracker = tracker or EpisodeTracker()
    previous_mode = agent.get_inference_mode()
    agent.set_inference_mode(True)

    episodes: List[EpisodeData] = []
    results: List[EpisodeResult] = []
    try:
        for _ in range(n_episodes):
            data = tracker.init()
            state = env.reset()
            done = False
            for _ in range(max_steps):
                action = agent.choose_action(env.get_state_string(state))
                state, reward, done = env.step(state, action)
                tracker.step(data, state, action, reward)
                if done:
                    break
            tracker.finalize(data, state)
            episodes.append(data)
            results.append(_to_result(data, done))
    finally:
        agent.set_inference_mode(previous_mode)

    if not results:
        return EvaluationResult()

    rewards = np.array([r.total_reward for r in results])
    avg = float(rewards.mean())
    std = float(rewards.std())
    cv = std / abs(avg) if abs(avg) > 0.01 else 0.0
    return EvaluationResult(
        episodes=results,
        avg_reward=avg,
        std_reward=std,
        success_rate=sum(r.success for r in results) / len(results),
        consistency=max(0.0, 1.0 - cv),
        summary=aggregate_episodes(episodes),
    )
