"""Tests for the Q-value store and shared model helpers."""

import numpy as np
import pytest

from fedq.model import copy_model, fit_vector, model_width, models_equal
from fedq.rl.q_table import QTable


class TestQTable:
    """Upsert-on-first-access semantics."""

    def setup_method(self):
        self.table = QTable(n_actions=3)

    def test_starts_empty(self):
        assert len(self.table) == 0
        assert self.table.states() == []

    def test_ensure_inserts_zeros(self):
        row = self.table.ensure("s0")
        np.testing.assert_array_equal(row, np.zeros(3))
        assert "s0" in self.table
        assert len(self.table) == 1

    def test_ensure_returns_live_row(self):
        self.table.ensure("s0")[1] = 4.0
        assert self.table.ensure("s0")[1] == 4.0
        assert len(self.table) == 1

    def test_get_never_inserts(self):
        assert self.table.get("s0") is None
        assert "s0" not in self.table

    def test_q_values_is_a_copy(self):
        self.table.ensure("s0")
        values = self.table.q_values("s0")
        values[0] = 9.0
        assert self.table.get("s0")[0] == 0.0

    def test_q_values_of_unseen_state(self):
        np.testing.assert_array_equal(self.table.q_values("nope"), np.zeros(3))
        assert "nope" not in self.table

    def test_to_model_is_deep_copy(self):
        self.table.ensure("s0")[0] = 1.0
        model = self.table.to_model()
        model["s0"][0] = 2.0
        assert self.table.get("s0")[0] == 1.0

    def test_from_model_fits_width(self):
        table = QTable.from_model({"a": [1.0], "b": [1.0, 2.0, 3.0, 4.0]}, n_actions=3)
        np.testing.assert_array_equal(table.get("a"), [1.0, 0.0, 0.0])
        np.testing.assert_array_equal(table.get("b"), [1.0, 2.0, 3.0])

    def test_iteration_and_clear(self):
        for s in ("a", "b", "c"):
            self.table.ensure(s)
        assert sorted(self.table) == ["a", "b", "c"]
        self.table.clear()
        assert len(self.table) == 0


class TestModelHelpers:
    """copy_model, fit_vector, model_width, models_equal."""

    def test_copy_model_isolated(self):
        original = {"s0": np.array([1.0, 2.0])}
        copied = copy_model(original)
        copied["s0"][0] = 5.0
        assert original["s0"][0] == 1.0

    def test_copy_model_from_lists(self):
        copied = copy_model({"s0": [1, 2]})
        assert copied["s0"].dtype == np.float64

    def test_fit_vector(self):
        np.testing.assert_array_equal(fit_vector([1.0, 2.0], 3), [1.0, 2.0, 0.0])
        np.testing.assert_array_equal(fit_vector([1.0, 2.0, 3.0], 2), [1.0, 2.0])

    def test_model_width(self):
        assert model_width({}) == 0
        assert model_width({"a": [1.0], "b": [1.0, 2.0]}) == 2

    def test_models_equal(self):
        assert models_equal({"a": [1.0]}, {"a": np.array([1.0])})
        assert not models_equal({"a": [1.0]}, {"b": [1.0]})
        assert not models_equal({"a": [1.0]}, {"a": [1.1]})
        assert models_equal({"a": [1.0]}, {"a": [1.0 + 1e-12]})
