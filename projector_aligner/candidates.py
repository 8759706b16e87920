"""Candidate spaces for the enumeration strategies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Iterable, Sequence, Tuple

import numpy as np

from projector_aligner.transform import Vec3, to_local_frame


def build_candidate_list(
    occupied: Iterable[Sequence[int]],
    origin: Sequence[int],
    orientation: np.ndarray | None = None,
) -> Tuple[Vec3, ...]:
    """Occupied cells in the device frame, unique, nearest first.

    Ties on squared distance are broken by the cell coordinates so that the
    order is total and does not depend on the input order.
    """
    local = to_local_frame(occupied, origin, orientation)
    if local.size == 0:
        return ()
    unique = np.unique(local, axis=0)
    distances = np.einsum("ij,ij->i", unique, unique)
    # lexsort sorts by the last key first
    order = np.lexsort((unique[:, 2], unique[:, 1], unique[:, 0], distances))
    return tuple(tuple(int(v) for v in unique[i]) for i in order)


@dataclass(frozen=True)
class LatticeBox:
    """Inclusive integer bounding box, indexed row-major with X fastest."""

    minimum: Vec3
    maximum: Vec3

    def __post_init__(self) -> None:
        if any(lo > hi for lo, hi in zip(self.minimum, self.maximum)):
            raise ValueError(f"empty lattice box {self.minimum}..{self.maximum}")

    @classmethod
    def enclosing(cls, cells: Iterable[Sequence[int]]) -> "LatticeBox":
        points = np.asarray(list(cells), dtype=int).reshape(-1, 3)
        if points.size == 0:
            raise ValueError("cannot bound an empty set of cells")
        lo = points.min(axis=0)
        hi = points.max(axis=0)
        return cls(tuple(int(v) for v in lo), tuple(int(v) for v in hi))

    @property
    def shape(self) -> Vec3:
        return tuple(hi - lo + 1 for lo, hi in zip(self.minimum, self.maximum))

    @property
    def volume(self) -> int:
        nx, ny, nz = self.shape
        return nx * ny * nz

    def cell_at(self, index: int) -> Vec3:
        if not 0 <= index < self.volume:
            raise IndexError(f"lattice index {index} outside [0, {self.volume})")
        nx, ny, _ = self.shape
        x0, y0, z0 = self.minimum
        return (x0 + index % nx, y0 + (index // nx) % ny, z0 + index // (nx * ny))

    def index_of(self, cell: Sequence[int]) -> int:
        nx, ny, _ = self.shape
        x, y, z = (c - lo for c, lo in zip(cell, self.minimum))
        return x + nx * (y + ny * z)

    def next_free_index(self, start: int, occupied: AbstractSet[Vec3]) -> int:
        """First index at or after ``start`` whose cell is not occupied.

        Returns ``volume`` when the rest of the box is occupied.
        """
        index = max(0, start)
        while index < self.volume and self.cell_at(index) in occupied:
            index += 1
        return index
