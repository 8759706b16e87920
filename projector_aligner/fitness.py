"""Fitness oracle built from the projector's unit counters."""

from __future__ import annotations

from dataclasses import dataclass

# completion outweighs exposing buildable surface
WELDABLE_WEIGHT = 0.2
COMPLETE_WEIGHT = 0.8


def compute_fitness(total: int, remaining: int, buildable: int) -> float:
    """Normalise the counters into ``[0, 1]``.

    Returns 0.0 for an empty blueprint, where progress is undefined, and
    exactly 1.0 when nothing remains to build. When the buildable share
    exceeds the completed share the two are blended so that exposing
    weldable blocks still counts as progress.
    """
    if total <= 0:
        return 0.0
    if remaining == 0:
        return 1.0
    complete = (total - remaining) / total
    weldable = 1.0 - (total - buildable) / total
    if weldable > complete:
        return WELDABLE_WEIGHT * weldable + COMPLETE_WEIGHT * complete
    return complete


@dataclass(frozen=True)
class UnitCounts:
    total: int
    remaining: int
    buildable: int

    def __post_init__(self) -> None:
        if self.total < 0 or self.remaining < 0 or self.buildable < 0:
            raise ValueError(f"unit counters must be non-negative: {self}")
        if self.remaining > self.total or self.buildable > self.total:
            raise ValueError(f"unit counters exceed the blueprint total: {self}")

    @property
    def fitness(self) -> float:
        return compute_fitness(self.total, self.remaining, self.buildable)

    @property
    def is_complete(self) -> bool:
        return self.total > 0 and self.remaining == 0
