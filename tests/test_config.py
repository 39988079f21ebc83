"""Tests for configuration dataclasses and structured errors."""

import pytest

from fedq.config import AgentConfig, FedQConfig, FederationConfig
from fedq.errors import (
    ConfigurationError,
    DimensionMismatchWarning,
    FedQError,
    InvalidOperationError,
)


class TestAgentConfig:
    """Hyperparameter validation."""

    def test_defaults_valid(self):
        AgentConfig().validate()

    @pytest.mark.parametrize("field,value", [
        ("n_actions", 0),
        ("n_actions", 2.5),
        ("epsilon", 1.01),
        ("epsilon_decay", 0.0),
        ("epsilon_decay", 1.5),
        ("alpha", 0.0),
        ("gamma", -0.1),
    ])
    def test_invalid(self, field, value):
        config = AgentConfig(epsilon_floor=0.0)
        setattr(config, field, value)
        with pytest.raises(ConfigurationError) as info:
            config.validate()
        assert info.value.context["field"] == field
        assert info.value.context["value"] == value

    def test_boundaries_allowed(self):
        AgentConfig(alpha=1.0, gamma=0.0, epsilon=1.0, epsilon_decay=1.0,
                    epsilon_floor=1.0, n_actions=1).validate()


class TestFederationConfig:
    """Federation settings validation."""

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError) as info:
            FederationConfig(strategy="random").validate()
        assert info.value.context["allowed"] == ["episodes", "performance"]

    def test_bad_interval(self):
        with pytest.raises(ConfigurationError):
            FederationConfig(federation_interval=0).validate()


class TestFedQConfig:
    """Master config round trips."""

    def test_dict_round_trip(self):
        config = FedQConfig()
        config.agent.n_actions = 4
        config.federation.strategy = "performance"
        config.training.n_clients = 5
        restored = FedQConfig.from_dict(config.to_dict())
        assert restored == config

    def test_partial_dict(self):
        config = FedQConfig.from_dict({"agent": {"alpha": 0.5}})
        assert config.agent.alpha == 0.5
        assert config.training.n_clients == 3

    def test_unknown_key(self):
        with pytest.raises(ConfigurationError):
            FedQConfig.from_dict({"agent": {"learning_rate": 0.5}})

    def test_json_round_trip(self, tmp_path):
        config = FedQConfig()
        config.federation.convergence_threshold = 0.001
        path = tmp_path / "config.json"
        config.to_json(path)
        assert FedQConfig.from_json(path) == config


class TestErrors:
    """Structured kind + context."""

    def test_to_dict(self):
        err = InvalidOperationError("frozen", operation="learn")
        assert err.to_dict() == {
            "kind": "invalid_operation",
            "message": "frozen",
            "context": {"operation": "learn"},
        }

    def test_hierarchy(self):
        assert issubclass(ConfigurationError, FedQError)
        assert issubclass(ConfigurationError, ValueError)
        assert issubclass(InvalidOperationError, RuntimeError)
        assert issubclass(DimensionMismatchWarning, UserWarning)

    def test_warning_context(self):
        w = DimensionMismatchWarning("widths differ", expected=4, found=[2, 4])
        assert w.kind == "dimension_mismatch"
        assert w.context == {"expected": 4, "found": [2, 4]}
