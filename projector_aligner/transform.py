"""Transform value type and the discrete rotation encodings.

Rotations are expressed as signed quarter-turn counts about the X, Y and Z
axes. Two encodings share that representation:

* the flattened 4x4x4 code in ``[0, 64)`` used by the random walk, the
  lattice scan and the annealed climb, where each component lives in
  ``[-2, 1]``;
* the explicit table of the 24 proper cardinal rotations used by the
  occupied-cell scan.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Sequence, Tuple

import numpy as np

Vec3 = Tuple[int, int, int]

ROTATION_CODES = 64
ZERO_OFFSET: Vec3 = (0, 0, 0)

# cos/sin of k quarter turns, exact integers
_COS = (1, 0, -1, 0)
_SIN = (0, 1, 0, -1)


def _wrap_turn(value: int) -> int:
    return (int(value) + 2) % 4 - 2


def decode_rotation(code: int) -> Vec3:
    """Return the quarter-turn triple stored in a flattened rotation code."""
    if not 0 <= code < ROTATION_CODES:
        raise ValueError(f"rotation code {code} outside [0, {ROTATION_CODES})")
    return (code // 16 - 2, (code % 16) // 4 - 2, code % 4 - 2)


def encode_rotation(turns: Sequence[int]) -> int:
    x, y, z = (_wrap_turn(t) for t in turns)
    return (x + 2) * 16 + (y + 2) * 4 + (z + 2)


IDENTITY_ROTATION = encode_rotation(ZERO_OFFSET)

# Proper rotations of the cube as (x, y, z) quarter turns, composed Rx @ Ry @ Rz.
# The first sixteen cover every X/Y combination, the last eight add the
# quarter spins about Z that those sixteen cannot reach.
CARDINAL_ROTATIONS: Tuple[Vec3, ...] = (
    (0, 0, 0),
    (1, 0, 0),
    (-2, 0, 0),
    (-1, 0, 0),
    (0, 1, 0),
    (1, 1, 0),
    (-2, 1, 0),
    (-1, 1, 0),
    (0, -2, 0),
    (1, -2, 0),
    (-2, -2, 0),
    (-1, -2, 0),
    (0, -1, 0),
    (1, -1, 0),
    (-2, -1, 0),
    (-1, -1, 0),
    (0, 0, 1),
    (1, 0, 1),
    (-2, 0, 1),
    (-1, 0, 1),
    (0, 0, -1),
    (1, 0, -1),
    (-2, 0, -1),
    (-1, 0, -1),
)


def cardinal_rotation_code(index: int) -> int:
    return encode_rotation(CARDINAL_ROTATIONS[index])


def rotation_matrix(turns: Sequence[int]) -> np.ndarray:
    """Integer rotation matrix ``Rx @ Ry @ Rz`` for a quarter-turn triple."""
    a, b, c = (int(t) % 4 for t in turns)
    rx = np.array(
        [[1, 0, 0], [0, _COS[a], -_SIN[a]], [0, _SIN[a], _COS[a]]], dtype=int
    )
    ry = np.array(
        [[_COS[b], 0, _SIN[b]], [0, 1, 0], [-_SIN[b], 0, _COS[b]]], dtype=int
    )
    rz = np.array(
        [[_COS[c], -_SIN[c], 0], [_SIN[c], _COS[c], 0], [0, 0, 1]], dtype=int
    )
    return rx @ ry @ rz


def to_local_frame(
    cells: Iterable[Sequence[int]],
    origin: Sequence[int],
    orientation: np.ndarray | None = None,
) -> np.ndarray:
    """Express grid cells relative to the device position and orientation.

    ``orientation`` maps local axes to grid axes, so the inverse (its
    transpose) takes a grid displacement back into the local frame.
    """
    points = np.asarray(list(cells), dtype=int).reshape(-1, 3)
    shifted = points - np.asarray(origin, dtype=int).reshape(1, 3)
    if orientation is None:
        return shifted
    basis = np.asarray(orientation, dtype=int).reshape(3, 3)
    return shifted @ basis


@dataclass(frozen=True)
class Transform:
    """Integer projection offset plus a flattened rotation code."""

    offset: Vec3 = ZERO_OFFSET
    rotation: int = IDENTITY_ROTATION

    def __post_init__(self) -> None:
        object.__setattr__(self, "offset", tuple(int(v) for v in self.offset))
        if len(self.offset) != 3:
            raise ValueError(f"offset must have three components: {self.offset}")
        if not 0 <= int(self.rotation) < ROTATION_CODES:
            raise ValueError(f"rotation code {self.rotation} outside [0, 64)")
        object.__setattr__(self, "rotation", int(self.rotation))

    @property
    def turns(self) -> Vec3:
        return decode_rotation(self.rotation)

    @property
    def degrees(self) -> Vec3:
        x, y, z = self.turns
        return (x * 90, y * 90, z * 90)

    def shifted(self, axis: int, delta: int) -> "Transform":
        offset = list(self.offset)
        offset[axis] += delta
        return replace(self, offset=tuple(offset))

    def turned(self, axis: int, delta: int) -> "Transform":
        turns = list(self.turns)
        turns[axis] += delta
        return replace(self, rotation=encode_rotation(turns))

    def __str__(self) -> str:
        x, y, z = self.offset
        rx, ry, rz = self.degrees
        return f"offset=({x}, {y}, {z}) rotation=({rx}, {ry}, {rz})"
