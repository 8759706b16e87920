"""Projector device abstraction layer.

The alignment core only needs a handful of device capabilities (counters,
health, offset/rotation control, a device-scoped store, and a survey of the
structure). Tests and the simulation runner plug in the in-memory
implementations:

    from projector_aligner.devices import InMemoryRegistry, MockProjector

    registry = InMemoryRegistry([MockProjector("Projector [RPA]")])
    device = resolve_device(registry, "RPA")
"""

from projector_aligner.devices.base import (
    DeviceRegistry,
    ProjectorDevice,
    StructureSurvey,
    resolve_device,
)
from projector_aligner.devices.mock import InMemoryRegistry, MockProjector, SimulatedProjector

__all__ = [
    "DeviceRegistry",
    "ProjectorDevice",
    "StructureSurvey",
    "resolve_device",
    "InMemoryRegistry",
    "MockProjector",
    "SimulatedProjector",
]
