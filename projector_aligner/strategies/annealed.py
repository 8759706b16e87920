"""Fitness-guided stochastic hill climb with rotation escalation."""

from __future__ import annotations

import logging

from projector_aligner.state import SearchState
from projector_aligner.strategies.base import (
    StepResult,
    Strategy,
    StrategyOutcome,
    TickInput,
)
from projector_aligner.transform import ROTATION_CODES, Transform

_LOGGER = logging.getLogger(__name__)


class AnnealedHillClimb(Strategy):
    """Perturb the offset while fitness improves, roll it back otherwise.

    Each axis gets an independent +1 draw and an independent -1 draw, so
    both can fire on the same tick and cancel out. A stall counter tracks
    ticks without beating the best fitness seen under the current rotation;
    once it exceeds the threshold the rotation code moves on to the next
    value.
    """

    name = "annealed"
    DEFAULT_MAX_STEPS = 20000

    def step(self, state: SearchState, tick: TickInput) -> StepResult:
        fitness = tick.fitness
        if not state.initialized:
            seed = state.previous_transform
            seeded = state.model_copy(
                update={
                    "initialized": True,
                    "offset": seed.offset,
                    "rotation": seed.rotation,
                    "current_fitness": fitness,
                    "previous_fitness": fitness,
                }
            )
            return StepResult(StrategyOutcome.CONTINUE, seeded, seed)

        if fitness >= 1.0:
            return StepResult(
                StrategyOutcome.SUCCESS,
                state.model_copy(update={"current_fitness": fitness}),
            )
        if self.budget_spent(state):
            return StepResult(
                StrategyOutcome.ABORT,
                state.model_copy(update={"current_fitness": fitness}),
            )

        rng = tick.rng
        improved = fitness > state.previous_fitness
        forced = rng.random() < self.config.force_apply_rate
        if improved or forced:
            offset = list(state.offset)
            rate = self.config.axis_mutation_rate
            for axis in range(3):
                if rng.random() < rate:
                    offset[axis] += 1
                if rng.random() < rate:
                    offset[axis] -= 1
            previous_offset = state.offset
            previous_fitness = fitness
        else:
            offset = list(state.previous_offset)
            previous_offset = state.previous_offset
            previous_fitness = state.previous_fitness

        stall = state.stall
        best = state.best_in_rotation
        rotation = state.rotation
        if fitness > best:
            stall, best = 0, fitness
        else:
            stall += 1
        if stall > self.config.stall_threshold:
            rotation = (rotation + 1) % ROTATION_CODES
            _LOGGER.info(
                "No improvement for %d ticks, trying rotation code %d", stall, rotation
            )
            stall, best = 0, 0.0

        transform = Transform(tuple(offset), rotation)
        advanced = state.model_copy(
            update={
                "step": state.step + 1,
                "offset": transform.offset,
                "rotation": transform.rotation,
                "previous_offset": previous_offset,
                "previous_rotation": state.rotation,
                "previous_fitness": previous_fitness,
                "current_fitness": fitness,
                "stall": stall,
                "best_in_rotation": best,
            }
        )
        return StepResult(StrategyOutcome.CONTINUE, advanced, transform)
