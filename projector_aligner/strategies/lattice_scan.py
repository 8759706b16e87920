"""Deterministic scan over the bounding-box lattice crossed with all 64 rotation codes."""

from __future__ import annotations

from typing import Set

from projector_aligner.candidates import LatticeBox
from projector_aligner.devices.base import StructureSurvey
from projector_aligner.state import SearchState
from projector_aligner.strategies.base import (
    StepResult,
    Strategy,
    StrategyOutcome,
    TickInput,
)
from projector_aligner.transform import ROTATION_CODES, Transform, Vec3, to_local_frame


def local_lattice(survey: StructureSurvey) -> tuple[LatticeBox, Set[Vec3]] | None:
    """Bounding box and occupied cells of the structure in the device frame."""
    bounds = survey.bounds()
    if bounds is None:
        return None
    lo, hi = bounds
    corners = [
        (x, y, z) for x in (lo[0], hi[0]) for y in (lo[1], hi[1]) for z in (lo[2], hi[2])
    ]
    box = LatticeBox.enclosing(
        to_local_frame(corners, survey.position, survey.orientation)
    )
    occupied = {
        tuple(int(v) for v in row)
        for row in to_local_frame(
            survey.occupied_cells(), survey.position, survey.orientation
        )
    }
    return box, occupied


class FullLatticeScan(Strategy):
    """Visit every unoccupied cell of the box with every rotation code.

    The rotation code advances each tick; the cell index advances only when
    the code wraps past 63, skipping occupied cells. Once the index reaches
    the box volume the scan is exhausted and no transform is emitted.
    """

    name = "lattice_scan"

    def step(self, state: SearchState, tick: TickInput) -> StepResult:
        fitness = tick.fitness
        if self.budget_spent(state):
            return StepResult(
                StrategyOutcome.EXHAUSTED,
                state.model_copy(update={"current_fitness": fitness}),
            )
        if tick.survey is None:
            raise ValueError("lattice scan needs a structure survey")

        lattice = local_lattice(tick.survey)
        if lattice is None:
            return StepResult(
                StrategyOutcome.EXHAUSTED,
                state.model_copy(update={"initialized": True, "current_fitness": fitness}),
            )
        box, occupied = lattice

        if not state.initialized:
            cursor, code = box.next_free_index(0, occupied), 0
        else:
            cursor, code = state.cursor, state.rotation + 1
            if code >= ROTATION_CODES:
                code = 0
                cursor = box.next_free_index(cursor + 1, occupied)

        if cursor >= box.volume:
            exhausted = state.model_copy(
                update={
                    "initialized": True,
                    "cursor": cursor,
                    "current_fitness": fitness,
                }
            )
            return StepResult(StrategyOutcome.EXHAUSTED, exhausted)

        transform = Transform(box.cell_at(cursor), code)
        advanced = state.model_copy(
            update={
                "initialized": True,
                "step": state.step + 1,
                "cursor": cursor,
                "previous_offset": state.offset,
                "previous_rotation": state.rotation,
                "previous_fitness": state.current_fitness,
                "offset": transform.offset,
                "rotation": transform.rotation,
                "current_fitness": fitness,
            }
        )
        return StepResult(StrategyOutcome.CONTINUE, advanced, transform)
