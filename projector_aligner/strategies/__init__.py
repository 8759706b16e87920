"""Alignment search strategies.

All four share the search state and step contract of
``projector_aligner.strategies.base`` and differ only in how they generate
moves and decide to keep them.
"""

from __future__ import annotations

from typing import Dict, Type

from projector_aligner.config import AlignerConfig
from projector_aligner.strategies.annealed import AnnealedHillClimb
from projector_aligner.strategies.base import (
    RandomSource,
    StepResult,
    Strategy,
    StrategyOutcome,
    TickInput,
)
from projector_aligner.strategies.cell_scan import OccupiedCellScan
from projector_aligner.strategies.lattice_scan import FullLatticeScan
from projector_aligner.strategies.random_walk import RandomWalkRollback

STRATEGIES: Dict[str, Type[Strategy]] = {
    cls.name: cls
    for cls in (RandomWalkRollback, OccupiedCellScan, FullLatticeScan, AnnealedHillClimb)
}


def create_strategy(config: AlignerConfig) -> Strategy:
    return STRATEGIES[config.strategy](config)


__all__ = [
    "STRATEGIES",
    "create_strategy",
    "RandomSource",
    "StepResult",
    "Strategy",
    "StrategyOutcome",
    "TickInput",
    "RandomWalkRollback",
    "OccupiedCellScan",
    "FullLatticeScan",
    "AnnealedHillClimb",
]
