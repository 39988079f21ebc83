"""Structured error types for FedQ.

Every condition carries a machine-readable ``kind`` and a ``context``
dict so callers can react without parsing messages.
"""

from typing import Any, Dict


class FedQError(Exception):
    """Base class for FedQ errors.

    Attributes:
        kind: Stable identifier for the error category.
        context: Structured details about the failure.
    """

    kind = "fedq"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        """Return kind, message and context as a plain dict."""
        return {
            "kind": self.kind,
            "message": self.message,
            "context": dict(self.context),
        }


class ConfigurationError(FedQError, ValueError):
    """Invalid hyperparameters supplied at construction."""

    kind = "configuration"


class InvalidOperationError(FedQError, RuntimeError):
    """Operation not allowed in the agent's current mode."""

    kind = "invalid_operation"


class ModelParseError(FedQError, ValueError):
    """Serialized model payload is not valid JSON."""

    kind = "parse"


class ModelSchemaError(FedQError, ValueError):
    """Serialized model payload has the wrong shape or version."""

    kind = "schema"


class DimensionMismatchWarning(UserWarning):
    """Models with different action-vector widths were merged.

    Non-fatal: the merge zero-pads the shorter vectors.
    """

    kind = "dimension_mismatch"

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context
