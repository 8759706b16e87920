"""Projector device and registry abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Iterable, Sequence, Tuple

import numpy as np

from projector_aligner.errors import ConfigurationError
from projector_aligner.fitness import UnitCounts

if TYPE_CHECKING:
    from projector_aligner.persistence import KeyValueStore
    from projector_aligner.transform import Vec3


class StructureSurvey(ABC):
    """Read-only view of the structure the projector is mounted on."""

    @property
    @abstractmethod
    def position(self) -> "Vec3":
        """Grid cell the projector occupies."""

    @property
    def orientation(self) -> np.ndarray:
        """Matrix mapping the projector's local axes onto grid axes."""
        return np.eye(3, dtype=int)

    @abstractmethod
    def occupied_cells(self) -> Iterable["Vec3"]:
        """Grid cells occupied by the existing structure."""

    def bounds(self) -> Tuple["Vec3", "Vec3"] | None:
        """Inclusive grid bounding box of the structure, None when empty."""
        cells = np.asarray(list(self.occupied_cells()), dtype=int).reshape(-1, 3)
        if cells.size == 0:
            return None
        lo = tuple(int(v) for v in cells.min(axis=0))
        hi = tuple(int(v) for v in cells.max(axis=0))
        return lo, hi


class ProjectorDevice(StructureSurvey):
    """Controllable projection device.

    The core only talks to the device through this interface:

    - MockProjector: counters scripted by tests
    - SimulatedProjector: counters derived from blueprint/structure geometry

    Offset and rotation setters stage a change; ``commit`` applies both at
    once from the device's point of view.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def storage(self) -> "KeyValueStore":
        """Device-scoped store holding the persisted search state."""

    @abstractmethod
    def start(self) -> None:
        """Enable the device and spawn the projection. Idempotent."""

    @property
    @abstractmethod
    def is_working(self) -> bool:
        pass

    @property
    @abstractmethod
    def is_projecting(self) -> bool:
        pass

    @property
    @abstractmethod
    def total_units(self) -> int:
        pass

    @property
    @abstractmethod
    def remaining_units(self) -> int:
        pass

    @property
    @abstractmethod
    def buildable_units(self) -> int:
        pass

    @abstractmethod
    def set_offset(self, offset: Sequence[int]) -> None:
        pass

    @abstractmethod
    def set_rotation(self, rotation: int) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    def unit_counts(self) -> UnitCounts:
        return UnitCounts(
            total=self.total_units,
            remaining=self.remaining_units,
            buildable=self.buildable_units,
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class DeviceRegistry(ABC):
    """Lookup of named blocks on the grid."""

    @abstractmethod
    def search_by_name(self, fragment: str) -> Sequence[object]:
        """Every block whose name contains ``fragment``."""


def resolve_device(registry: DeviceRegistry, tag: str) -> ProjectorDevice:
    """Return the single projector named with ``[tag]``.

    Raises:
        ConfigurationError: zero matches, several matches, or a match that is
            not a projector.
    """
    blocks = list(registry.search_by_name(f"[{tag}]"))
    if len(blocks) == 1 and isinstance(blocks[0], ProjectorDevice):
        return blocks[0]
    raise ConfigurationError(
        f"Expected one projector with tag [{tag}], found {len(blocks)}."
    )
