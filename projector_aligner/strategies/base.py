"""Shared strategy contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Protocol

from projector_aligner.config import AlignerConfig
from projector_aligner.devices.base import StructureSurvey
from projector_aligner.fitness import UnitCounts
from projector_aligner.state import SearchState
from projector_aligner.transform import Transform


class StrategyOutcome(str, Enum):
    CONTINUE = "continue"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    ABORT = "abort"


class RandomSource(Protocol):
    """Subset of ``numpy.random.Generator`` the strategies draw from."""

    def random(self) -> float: ...

    def integers(self, low: int, high: int) -> int: ...


@dataclass(frozen=True)
class TickInput:
    counts: UnitCounts
    rng: RandomSource
    survey: StructureSurvey | None = None

    @property
    def fitness(self) -> float:
        return self.counts.fitness


@dataclass(frozen=True)
class StepResult:
    """Decision for one tick.

    ``transform`` is what the driver applies to the device; None leaves the
    device untouched (terminal outcomes, or a scan with nothing left to try).
    """

    outcome: StrategyOutcome
    state: SearchState
    transform: Transform | None = None


class Strategy(ABC):
    """Move generation and acceptance policy over the shared search state.

    ``step`` must not mutate its input; the returned state replaces the
    persisted one wholesale.
    """

    name: ClassVar[str]
    DEFAULT_MAX_STEPS: ClassVar[int | None] = None

    def __init__(self, config: AlignerConfig | None = None) -> None:
        self.config = config or AlignerConfig(strategy=self.name)
        self.max_steps = (
            self.config.max_steps
            if self.config.max_steps is not None
            else self.DEFAULT_MAX_STEPS
        )

    @abstractmethod
    def step(self, state: SearchState, tick: TickInput) -> StepResult:
        pass

    def budget_spent(self, state: SearchState) -> bool:
        return self.max_steps is not None and state.step > self.max_steps

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} max_steps={self.max_steps}>"
