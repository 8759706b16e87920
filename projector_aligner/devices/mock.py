"""In-memory projectors and registry for tests and the simulation runner."""

from __future__ import annotations

from typing import Iterable, List, Sequence, Tuple

import numpy as np

from projector_aligner.devices.base import DeviceRegistry, ProjectorDevice
from projector_aligner.fitness import UnitCounts
from projector_aligner.persistence import KeyValueStore, MemoryStore
from projector_aligner.transform import (
    IDENTITY_ROTATION,
    ZERO_OFFSET,
    Transform,
    Vec3,
    decode_rotation,
    rotation_matrix,
)

_FACE_NEIGHBOURS = np.array(
    [(1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0), (0, 0, 1), (0, 0, -1)], dtype=int
)


class MockProjector(ProjectorDevice):
    """Projector whose unit counters are set directly by the caller.

    Every committed transform is appended to ``applied`` so tests can assert
    on the exact sequence the core produced.

    Example:
        >>> device = MockProjector("Projector [RPA]", counts=UnitCounts(10, 10, 0))
        >>> device.set_offset((1, 0, 0)); device.commit()
        >>> device.applied[-1].offset
        (1, 0, 0)
    """

    def __init__(
        self,
        name: str = "Projector [RPA]",
        *,
        counts: UnitCounts | None = None,
        position: Vec3 = ZERO_OFFSET,
        orientation: np.ndarray | None = None,
        occupied: Iterable[Sequence[int]] = (),
        bounds: Tuple[Vec3, Vec3] | None = None,
        working: bool = True,
        spawns_projection: bool = True,
        storage: KeyValueStore | None = None,
        initial: Transform | None = None,
    ) -> None:
        self._name = name
        self.counts = counts or UnitCounts(total=10, remaining=10, buildable=0)
        self._position = tuple(int(v) for v in position)
        self._orientation = (
            np.eye(3, dtype=int) if orientation is None else np.asarray(orientation, dtype=int)
        )
        self._occupied = [tuple(int(v) for v in cell) for cell in occupied]
        self._bounds = bounds
        self.working = working
        self.spawns_projection = spawns_projection
        self.projecting = False
        self.enabled = False
        self._storage = storage if storage is not None else MemoryStore()

        self.current = initial or Transform(ZERO_OFFSET, IDENTITY_ROTATION)
        self._pending_offset: Vec3 = self.current.offset
        self._pending_rotation: int = self.current.rotation
        self.applied: List[Transform] = []
        self.start_count = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def storage(self) -> KeyValueStore:
        return self._storage

    @property
    def position(self) -> Vec3:
        return self._position

    @property
    def orientation(self) -> np.ndarray:
        return self._orientation

    def occupied_cells(self) -> List[Vec3]:
        return list(self._occupied)

    def bounds(self) -> Tuple[Vec3, Vec3] | None:
        if self._bounds is not None:
            return self._bounds
        return super().bounds()

    def start(self) -> None:
        self.start_count += 1
        self.enabled = True
        if self.working and self.spawns_projection:
            self.projecting = True

    @property
    def is_working(self) -> bool:
        return self.enabled and self.working

    @property
    def is_projecting(self) -> bool:
        return self.projecting

    @property
    def total_units(self) -> int:
        return self.counts.total

    @property
    def remaining_units(self) -> int:
        return self.counts.remaining

    @property
    def buildable_units(self) -> int:
        return self.counts.buildable

    def set_offset(self, offset: Sequence[int]) -> None:
        self._pending_offset = tuple(int(v) for v in offset)

    def set_rotation(self, rotation: int) -> None:
        self._pending_rotation = int(rotation)

    def commit(self) -> None:
        self.current = Transform(self._pending_offset, self._pending_rotation)
        self.applied.append(self.current)


class SimulatedProjector(MockProjector):
    """Projector whose counters follow from blueprint and structure geometry.

    A blueprint cell ``b`` lands on grid cell
    ``position + orientation @ (R @ b + offset)``. Landed cells that the
    structure already occupies count as built; unbuilt cells touching the
    structure count as buildable.

    ``initial`` is the transform the device already holds, as a real
    projector keeps its offset and rotation across a script reload.
    """

    def __init__(
        self,
        name: str = "Projector [RPA]",
        *,
        blueprint: Iterable[Sequence[int]],
        structure: Iterable[Sequence[int]],
        position: Vec3 = ZERO_OFFSET,
        orientation: np.ndarray | None = None,
        working: bool = True,
        spawns_projection: bool = True,
        storage: KeyValueStore | None = None,
        initial: Transform | None = None,
    ) -> None:
        self._blueprint = np.asarray(list(blueprint), dtype=int).reshape(-1, 3)
        self._structure = {tuple(int(v) for v in cell) for cell in structure}
        super().__init__(
            name,
            counts=UnitCounts(len(self._blueprint), len(self._blueprint), 0),
            position=position,
            orientation=orientation,
            occupied=sorted(self._structure),
            working=working,
            spawns_projection=spawns_projection,
            storage=storage,
            initial=initial,
        )
        self._recount()

    def projected_cells(self) -> np.ndarray:
        rot = rotation_matrix(decode_rotation(self.current.rotation))
        local = self._blueprint @ rot.T + np.asarray(self.current.offset, dtype=int)
        return local @ self.orientation.T + np.asarray(self.position, dtype=int)

    def commit(self) -> None:
        super().commit()
        self._recount()

    def _recount(self) -> None:
        total = len(self._blueprint)
        cells = [tuple(int(v) for v in row) for row in self.projected_cells()]
        built = {cell for cell in cells if cell in self._structure}
        solid = self._structure | built
        buildable = 0
        for cell in cells:
            if cell in built:
                continue
            neighbours = np.asarray(cell, dtype=int) + _FACE_NEIGHBOURS
            if any(tuple(int(v) for v in n) in solid for n in neighbours):
                buildable += 1
        self.counts = UnitCounts(
            total=total, remaining=total - len(built), buildable=buildable
        )


class InMemoryRegistry(DeviceRegistry):
    """Registry over a fixed list of named blocks."""

    def __init__(self, blocks: Iterable[object] = ()) -> None:
        self.blocks = list(blocks)

    def search_by_name(self, fragment: str) -> List[object]:
        return [block for block in self.blocks if fragment in getattr(block, "name", "")]
