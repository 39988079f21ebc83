"""Tests for auto-federation trigger predicates."""

from collections import deque

import pytest

from fedq.federated.triggers import (
    should_federate_by_episodes,
    should_federate_by_performance,
)


class TestEpisodeTrigger:
    """Interval-crossing predicate."""

    def test_fires_on_first_crossing(self):
        assert should_federate_by_episodes([100, 100, 100], 100, 0)

    def test_no_duplicate_within_interval(self):
        assert not should_federate_by_episodes([100, 100, 100], 100, 100)
        assert not should_federate_by_episodes([150, 180, 120], 100, 100)

    def test_fires_again_next_interval(self):
        assert should_federate_by_episodes([200, 200, 200], 100, 100)

    def test_uses_mean(self):
        assert not should_federate_by_episodes([50, 140], 100, 0)
        assert should_federate_by_episodes([60, 140], 100, 0)

    def test_before_first_interval(self):
        assert not should_federate_by_episodes([10, 20, 30], 100, 0)

    def test_fires_once_while_counts_advance(self):
        last = 0.0
        fired = []
        for episode in range(1, 301):
            counts = [episode, episode]
            if should_federate_by_episodes(counts, 100, last):
                fired.append(episode)
                last = episode
        assert fired == [100, 200, 300]

    def test_degenerate_inputs(self):
        assert not should_federate_by_episodes([], 100, 0)
        assert not should_federate_by_episodes([100], 0, 0)


class TestPerformanceTrigger:
    """Reward-plateau predicate."""

    def test_insufficient_data(self):
        assert not should_federate_by_performance([1.0] * 19, window_size=10)
        assert not should_federate_by_performance([], window_size=10)

    def test_plateau_fires(self):
        rewards = [5.0] * 20
        assert should_federate_by_performance(rewards, window_size=10)

    def test_improving_does_not_fire(self):
        rewards = [1.0] * 10 + [2.0] * 10
        assert not should_federate_by_performance(rewards, window_size=10)

    def test_declining_fires(self):
        rewards = [2.0] * 10 + [1.0] * 10
        assert should_federate_by_performance(rewards, window_size=10)

    def test_only_last_two_windows_count(self):
        rewards = [100.0] * 50 + [1.0] * 5 + [3.0] * 5
        assert not should_federate_by_performance(rewards, window_size=5)

    def test_threshold_boundary(self):
        rewards = [10.0] * 4 + [10.5] * 4
        assert should_federate_by_performance(rewards, window_size=4, improvement_threshold=0.05)
        assert not should_federate_by_performance(rewards, window_size=4, improvement_threshold=0.04)

    def test_zero_previous_average(self):
        rewards = [0.0] * 3 + [1.0] * 3
        assert not should_federate_by_performance(rewards, window_size=3)

    def test_accepts_deque(self):
        rewards = deque([1.0] * 30, maxlen=100)
        assert should_federate_by_performance(rewards, window_size=10)

    def test_negative_rewards(self):
        # -10 -> -5 is a 50% improvement relative to |prev|
        rewards = [-10.0] * 5 + [-5.0] * 5
        assert not should_federate_by_performance(rewards, window_size=5)
