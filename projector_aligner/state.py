"""Persisted search state.

The state is the only thing that survives between ticks. It is rebuilt from
the device's flat key-value store at the start of every tick and written back
in full at the end, so every field has a default and a string encoding.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Mapping, Tuple

import pydantic

from projector_aligner.transform import IDENTITY_ROTATION, ZERO_OFFSET, Transform, Vec3

_LOGGER = logging.getLogger(__name__)

STATE_VERSION = 1


class SearchPhase(str, Enum):
    SEARCHING = "searching"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


def _parse_triple(value: Any) -> Any:
    if isinstance(value, str):
        parts = [part.strip() for part in value.split(",")]
        if len(parts) != 3:
            raise ValueError(f"expected 'x,y,z', got {value!r}")
        return tuple(int(part) for part in parts)
    return value


def _format_triple(value: Vec3) -> str:
    return ",".join(str(int(v)) for v in value)


class SearchState(pydantic.BaseModel):
    """Progress record shared by every strategy.

    Strategy-specific bookkeeping lives in the same flat record: ``stall`` and
    ``best_in_rotation`` for the annealed climb, ``cursor``, ``rotation_index``
    and ``candidates`` for the scans.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    state_version: int = STATE_VERSION
    strategy: str = ""
    phase: SearchPhase = SearchPhase.SEARCHING
    initialized: bool = False
    step: int = 0

    offset: Vec3 = ZERO_OFFSET
    rotation: int = pydantic.Field(default=IDENTITY_ROTATION, ge=0, lt=64)
    previous_offset: Vec3 = ZERO_OFFSET
    previous_rotation: int = pydantic.Field(default=IDENTITY_ROTATION, ge=0, lt=64)
    current_fitness: float = 0.0
    previous_fitness: float = 0.0

    stall: int = 0
    best_in_rotation: float = 0.0

    cursor: int = 0
    rotation_index: int = 0
    candidates: Tuple[Vec3, ...] = ()

    @pydantic.field_validator("offset", "previous_offset", mode="before")
    @classmethod
    def _coerce_triple(cls, value: Any) -> Any:
        return _parse_triple(value)

    @pydantic.field_validator("candidates", mode="before")
    @classmethod
    def _coerce_candidates(cls, value: Any) -> Any:
        if isinstance(value, str):
            return tuple(_parse_triple(chunk) for chunk in value.split(";") if chunk.strip())
        return value

    @classmethod
    def fresh(cls, strategy: str) -> "SearchState":
        return cls(strategy=strategy)

    @classmethod
    def from_flat(
        cls, payload: Mapping[str, str], *, strategy: str | None = None
    ) -> "SearchState":
        """Rebuild the state from a flat mapping, defaulting absent keys.

        A record left behind by a different strategy, or written with another
        ``state_version``, is discarded.
        """
        known = {
            key: value
            for key, value in payload.items()
            if key in cls.model_fields and str(value).strip() != ""
        }
        state = cls.model_validate(known)
        if state.state_version != STATE_VERSION:
            _LOGGER.warning(
                "discarding search state version %d (expected %d)",
                state.state_version,
                STATE_VERSION,
            )
            return cls.fresh(strategy if strategy is not None else state.strategy)
        if strategy is not None and state.strategy != strategy:
            return cls.fresh(strategy)
        return state

    def to_flat(self) -> dict[str, str]:
        flat: dict[str, str] = {}
        for key in type(self).model_fields:
            value = getattr(self, key)
            if key in ("offset", "previous_offset"):
                flat[key] = _format_triple(value)
            elif key == "candidates":
                flat[key] = ";".join(_format_triple(cell) for cell in value)
            elif isinstance(value, SearchPhase):
                flat[key] = value.value
            elif isinstance(value, bool):
                flat[key] = "true" if value else "false"
            elif isinstance(value, float):
                flat[key] = repr(value)
            else:
                flat[key] = str(value)
        return flat

    @property
    def transform(self) -> Transform:
        return Transform(self.offset, self.rotation)

    @property
    def previous_transform(self) -> Transform:
        return Transform(self.previous_offset, self.previous_rotation)

    @property
    def is_terminal(self) -> bool:
        return self.phase is not SearchPhase.SEARCHING
