"""Tests for federated averaging.

The union-of-states property is the central guarantee: a merge must
never drop a state that only a non-first client has visited.
"""

import warnings

import numpy as np
import pytest

from fedq.config import AgentConfig
from fedq.errors import DimensionMismatchWarning
from fedq.federated.aggregation import (
    compute_client_deltas,
    federated_average,
    federated_average_weighted,
    union_states,
)
from fedq.model import copy_model, models_equal
from fedq.rl.tabular_agent import TabularAgent


def random_model(rng, states, n_actions=3):
    return {s: rng.normal(size=n_actions) for s in states}


class TestUnionOfStates:
    """No state is silently dropped."""

    def test_states_only_in_later_models_survive(self):
        models = [
            {"a": [1.0, 0.0]},
            {"b": [0.0, 2.0]},
            {"c": [3.0, 3.0]},
        ]
        merged = federated_average(models)
        assert set(merged) == {"a", "b", "c"}

    def test_superset_of_every_input(self):
        rng = np.random.default_rng(7)
        models = [
            random_model(rng, [f"s{i}" for i in range(k, k + 5)])
            for k in range(0, 20, 3)
        ]
        merged = federated_average(models)
        for model in models:
            assert set(model) <= set(merged)

    def test_missing_state_counts_as_zero(self):
        models = [{"a": [4.0, 8.0]}, {"b": [2.0, 2.0]}]
        merged = federated_average(models)
        np.testing.assert_allclose(merged["a"], [2.0, 4.0])
        np.testing.assert_allclose(merged["b"], [1.0, 1.0])

    def test_union_states_order(self):
        assert union_states([{"x": 0, "y": 0}, {"y": 0, "z": 0}]) == ["x", "y", "z"]


class TestAveragingIdentities:
    """Algebraic identities of FedAvg."""

    def test_single_model_is_identity(self):
        rng = np.random.default_rng(0)
        model = random_model(rng, ["s0", "s1", "s2"])
        assert models_equal(federated_average([model]), model)

    def test_identical_models_are_a_no_op(self):
        rng = np.random.default_rng(1)
        model = random_model(rng, ["s0", "s1", "s2", "s3"])
        assert models_equal(federated_average([model, copy_model(model)]), model)

    def test_different_models(self):
        models = [{"s0": [0.0, 10.0]}, {"s0": [10.0, 0.0]}]
        merged = federated_average(models)
        np.testing.assert_allclose(merged["s0"], [5.0, 5.0])

    def test_explicit_weights(self):
        models = [{"s0": [10.0]}, {"s0": [0.0]}]
        merged = federated_average(models, weights=[0.75, 0.25])
        assert merged["s0"][0] == pytest.approx(7.5)

    def test_inputs_not_mutated(self):
        models = [{"s0": np.array([1.0, 2.0])}, {"s1": np.array([3.0, 4.0])}]
        snapshot = [copy_model(m) for m in models]
        merged = federated_average(models)
        merged["s0"][0] = 100.0
        for before, after in zip(snapshot, models):
            assert models_equal(before, after)

    def test_output_does_not_alias_input(self):
        model = {"s0": np.array([1.0, 2.0])}
        merged = federated_average([model])
        assert merged["s0"] is not model["s0"]


class TestAveragingErrors:
    """Input validation."""

    def test_empty_models(self):
        with pytest.raises(ValueError):
            federated_average([])

    def test_wrong_weight_count(self):
        with pytest.raises(ValueError):
            federated_average([{"s": [1.0]}, {"s": [2.0]}], weights=[1.0])

    def test_negative_weight(self):
        with pytest.raises(ValueError):
            federated_average([{"s": [1.0]}, {"s": [2.0]}], weights=[1.5, -0.5])


class TestDimensionMismatch:
    """Merging vectors of different widths."""

    def test_pads_and_reports(self):
        reports = []
        models = [{"s0": [2.0, 2.0, 2.0]}, {"s0": [4.0, 4.0]}]
        merged = federated_average(models, reporter=reports.append)

        np.testing.assert_allclose(merged["s0"], [3.0, 3.0, 1.0])
        assert len(reports) == 1
        assert isinstance(reports[0], DimensionMismatchWarning)
        assert reports[0].kind == "dimension_mismatch"
        assert reports[0].context["expected"] == 3
        assert reports[0].context["found"] == [2, 3]

    def test_default_reporter_warns(self):
        with pytest.warns(DimensionMismatchWarning):
            federated_average([{"s0": [1.0]}, {"s0": [1.0, 1.0]}])

    def test_no_report_for_equal_widths(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            federated_average([{"s0": [1.0, 2.0]}, {"s1": [3.0, 4.0]}])


class TestWeightedAverage:
    """Sample-count weighting."""

    def test_proportional_to_counts(self):
        models = [{"s0": [10.0]}, {"s0": [0.0]}]
        merged = federated_average_weighted(models, [300, 100])
        assert merged["s0"][0] == pytest.approx(7.5)

    def test_zero_count_client_contributes_nothing(self):
        models = [{"s0": [10.0]}, {"s0": [-50.0], "s1": [5.0]}]
        merged = federated_average_weighted(models, [10, 0])
        assert merged["s0"][0] == pytest.approx(10.0)
        assert merged["s1"][0] == pytest.approx(0.0)

    def test_all_zero_counts(self):
        with pytest.raises(ValueError):
            federated_average_weighted([{"s0": [1.0]}], [0])

    def test_negative_counts(self):
        with pytest.raises(ValueError):
            federated_average_weighted([{"s0": [1.0]}, {"s0": [1.0]}], [5, -1])


class TestClientDeltas:
    """Per-client L2 distances."""

    def test_distance_values(self):
        global_model = {"s0": [1.0, 1.0]}
        clients = [{"s0": [1.0, 1.0]}, {"s0": [4.0, 5.0]}, {"s1": [3.0, 4.0]}]
        deltas = compute_client_deltas(global_model, clients)
        assert deltas[0] == pytest.approx(0.0)
        assert deltas[1] == pytest.approx(5.0)
        assert deltas[2] == pytest.approx(np.sqrt(2.0 + 25.0))


class TestAgentScenario:
    """Two fresh agents learning the same transition."""

    def test_merge_of_identical_single_updates(self):
        config = dict(alpha=0.1, gamma=0.9, epsilon=0.3, n_actions=4)
        a1 = TabularAgent(AgentConfig(**config), seed=1)
        a2 = TabularAgent(AgentConfig(**config), seed=2)
        a1.learn("s0", 0, 10.0, "s1")
        a2.learn("s0", 0, 10.0, "s1")

        merged = federated_average([a1.export_model(), a2.export_model()])
        assert merged["s0"][0] == pytest.approx(a1.get_q_values("s0")[0])
        assert merged["s0"][0] == pytest.approx(0.1 * 10.0)
