"""Deterministic grid world used for examples and integration tests.

The agent starts in the top-left corner and must reach the goal in the
bottom-right corner. Every move costs -1, reaching the goal pays +100,
and running out of steps costs -10.
"""

from dataclasses import dataclass, replace

from .base import StepResult

ACTIONS = ("up", "down", "left", "right")


@dataclass(frozen=True)
class GridState:
    x: int = 0
    y: int = 0
    steps: int = 0
    done: bool = False


class GridWorld:
    """Square grid world.

    Attributes:
        size: Grid side length.
        max_steps: Step budget per episode.
    """

    n_actions = len(ACTIONS)

    # Rewards
    GOAL_REWARD = 100.0
    STEP_PENALTY = -1.0
    TIMEOUT_PENALTY = -10.0

    def __init__(self, size: int = 5, max_steps: int = 100):
        if size < 2:
            raise ValueError(f"size must be >= 2, got {size}")
        self.size = size
        self.max_steps = max_steps
        self.goal = (size - 1, size - 1)

    def reset(self) -> GridState:
        return GridState()

    def step(self, state: GridState, action: int) -> StepResult:
        """Move one cell; walls leave the position unchanged."""
        if state.done:
            return StepResult(state, 0.0, True)

        x, y = state.x, state.y
        if action == 0 and y > 0:
            y -= 1
        elif action == 1 and y < self.size - 1:
            y += 1
        elif action == 2 and x > 0:
            x -= 1
        elif action == 3 and x < self.size - 1:
            x += 1

        steps = state.steps + 1
        if (x, y) == self.goal:
            return StepResult(replace(state, x=x, y=y, steps=steps, done=True),
                              self.GOAL_REWARD, True)
        if steps >= self.max_steps:
            return StepResult(replace(state, x=x, y=y, steps=steps, done=True),
                              self.TIMEOUT_PENALTY, True)
        return StepResult(replace(state, x=x, y=y, steps=steps),
                          self.STEP_PENALTY, False)

    def get_state_string(self, state: GridState) -> str:
        return f"{state.x},{state.y}"
