"""Environment contract consumed by the training loop.

Environments are external collaborators: they only produce states and
rewards. Any object with this shape can be trained on.
"""

from typing import Any, NamedTuple, Protocol


class StepResult(NamedTuple):
    """Outcome of one environment step.

    Attributes:
        state: Next environment state.
        reward: Reward for the transition.
        done: Whether the episode ended.
    """
    state: Any
    reward: float
    done: bool


class Environment(Protocol):
    """Discrete-action environment with string state keys."""

    n_actions: int

    def reset(self) -> Any:
        ...

    def step(self, state: Any, action: int) -> StepResult:
        ...

    def get_state_string(self, state: Any) -> str:
        ...
