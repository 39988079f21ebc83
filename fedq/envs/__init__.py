"""Environments for FedQ agents."""

from .base import (
    Environment,
    StepResult,
)
from .grid_world import (
    GridWorld,
    GridState,
)

__all__ = [
    "Environment",
    "StepResult",
    "GridWorld",
    "GridState",
]
