"""Random walk with probabilistic rollback."""

from __future__ import annotations

import logging

from projector_aligner.state import SearchState
from projector_aligner.strategies.base import (
    StepResult,
    Strategy,
    StrategyOutcome,
    TickInput,
)
from projector_aligner.transform import Transform

_LOGGER = logging.getLogger(__name__)


class RandomWalkRollback(Strategy):
    """Single-axis random moves, undone when fitness does not improve.

    Every tick after the first draws the force-accept roll, so a scripted
    random source sees the same number of draws per tick regardless of the
    fitness comparison.
    """

    name = "random_walk"
    DEFAULT_MAX_STEPS = 10

    def step(self, state: SearchState, tick: TickInput) -> StepResult:
        fitness = tick.fitness
        if not state.initialized:
            start = Transform()
            seeded = state.model_copy(
                update={
                    "initialized": True,
                    "step": 0,
                    "offset": start.offset,
                    "rotation": start.rotation,
                    "previous_offset": start.offset,
                    "previous_rotation": start.rotation,
                    "current_fitness": fitness,
                    "previous_fitness": fitness,
                }
            )
            return StepResult(StrategyOutcome.CONTINUE, seeded, start)

        if self.budget_spent(state):
            return StepResult(
                StrategyOutcome.EXHAUSTED,
                state.model_copy(update={"current_fitness": fitness}),
            )

        improved = fitness > state.previous_fitness
        forced = tick.rng.random() < self.config.force_accept_rate
        if not (improved or forced):
            _LOGGER.info(
                "Rollback needed (prev %.4f, curr %.4f)", state.previous_fitness, fitness
            )
            restored = state.previous_transform
            rolled_back = state.model_copy(
                update={
                    "step": state.step + 1,
                    "offset": restored.offset,
                    "rotation": restored.rotation,
                    "current_fitness": fitness,
                }
            )
            return StepResult(StrategyOutcome.CONTINUE, rolled_back, restored)

        _LOGGER.info("No rollback needed (forced=%s)", forced and not improved)
        kept = state.transform
        axis = int(tick.rng.integers(0, 3))
        direction = -1 if int(tick.rng.integers(0, 2)) == 0 else 1
        if tick.rng.random() < self.config.offset_mutation_rate:
            moved = kept.shifted(axis, direction)
        else:
            moved = kept.turned(axis, direction)
        advanced = state.model_copy(
            update={
                "step": state.step + 1,
                "previous_offset": kept.offset,
                "previous_rotation": kept.rotation,
                "previous_fitness": fitness,
                "offset": moved.offset,
                "rotation": moved.rotation,
                "current_fitness": fitness,
            }
        )
        return StepResult(StrategyOutcome.CONTINUE, advanced, moved)
