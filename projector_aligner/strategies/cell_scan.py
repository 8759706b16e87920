"""Deterministic scan over occupied cells crossed with the 24 cardinal rotations."""

from __future__ import annotations

from projector_aligner.candidates import build_candidate_list
from projector_aligner.state import SearchState
from projector_aligner.strategies.base import (
    StepResult,
    Strategy,
    StrategyOutcome,
    TickInput,
)
from projector_aligner.transform import CARDINAL_ROTATIONS, Transform, cardinal_rotation_code


class OccupiedCellScan(Strategy):
    name = "cell_scan"

    def step(self, state: SearchState, tick: TickInput) -> StepResult:
        fitness = tick.fitness
        if self.budget_spent(state):
            return StepResult(
                StrategyOutcome.EXHAUSTED,
                state.model_copy(update={"current_fitness": fitness}),
            )

        candidates = state.candidates
        if not candidates:
            if tick.survey is None:
                raise ValueError("occupied-cell scan needs a structure survey")
            candidates = build_candidate_list(
                tick.survey.occupied_cells(),
                tick.survey.position,
                tick.survey.orientation,
            )

        if not state.initialized:
            cursor, rotation_index = 0, 0
        else:
            cursor, rotation_index = state.cursor, state.rotation_index + 1
            if rotation_index >= len(CARDINAL_ROTATIONS):
                rotation_index = 0
                cursor += 1

        if cursor >= len(candidates):
            exhausted = state.model_copy(
                update={
                    "initialized": True,
                    "candidates": candidates,
                    "cursor": cursor,
                    "rotation_index": rotation_index,
                    "current_fitness": fitness,
                }
            )
            return StepResult(StrategyOutcome.EXHAUSTED, exhausted)

        transform = Transform(candidates[cursor], cardinal_rotation_code(rotation_index))
        advanced = state.model_copy(
            update={
                "initialized": True,
                "step": state.step + 1,
                "candidates": candidates,
                "cursor": cursor,
                "rotation_index": rotation_index,
                "previous_offset": state.offset,
                "previous_rotation": state.rotation,
                "previous_fitness": state.current_fitness,
                "offset": transform.offset,
                "rotation": transform.rotation,
                "current_fitness": fitness,
            }
        )
        return StepResult(StrategyOutcome.CONTINUE, advanced, transform)
