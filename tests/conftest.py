"""Shared fixtures for the alignment tests."""

from __future__ import annotations

from collections import deque
from typing import Iterable

import pytest
import yaml

from projector_aligner.devices.mock import InMemoryRegistry, MockProjector
from projector_aligner.fitness import UnitCounts
from projector_aligner.persistence import MemoryStore


class ScriptedRandom:
    """Random source replaying queued draws.

    Running out of queued values fails the test, so every draw a strategy
    makes has to be accounted for.
    """

    def __init__(self, randoms: Iterable[float] = (), integers: Iterable[int] = ()) -> None:
        self.randoms = deque(randoms)
        self.ints = deque(integers)
        self.random_calls = 0
        self.integer_calls = 0

    def random(self) -> float:
        self.random_calls += 1
        if not self.randoms:
            raise AssertionError("unexpected random() draw")
        return self.randoms.popleft()

    def integers(self, low: int, high: int) -> int:
        self.integer_calls += 1
        if not self.ints:
            raise AssertionError("unexpected integers() draw")
        value = self.ints.popleft()
        assert low <= value < high, (value, low, high)
        return value


class ConstantRandom:
    """Every ``random()`` draw returns ``value``; ``integers`` returns ``low``."""

    def __init__(self, value: float) -> None:
        self.value = value
        self.random_calls = 0

    def random(self) -> float:
        self.random_calls += 1
        return self.value

    def integers(self, low: int, high: int) -> int:
        return low


def config_text(tag: str = "RPA", **options) -> str:
    return yaml.safe_dump({"projector": {"tag": tag}, "options": options})


@pytest.fixture
def counts_factory():
    def _make(total: int = 10, remaining: int = 10, buildable: int = 0) -> UnitCounts:
        return UnitCounts(total=total, remaining=remaining, buildable=buildable)

    return _make


@pytest.fixture
def projector() -> MockProjector:
    return MockProjector("Projector [RPA]", counts=UnitCounts(10, 10, 0))


@pytest.fixture
def registry(projector: MockProjector) -> InMemoryRegistry:
    return InMemoryRegistry([projector])


@pytest.fixture
def config_store() -> MemoryStore:
    return MemoryStore(config_text())


@pytest.fixture
def scripted():
    """Factory for :class:`ScriptedRandom`."""
    return ScriptedRandom


@pytest.fixture
def constant_random():
    return ConstantRandom


@pytest.fixture
def make_config_text():
    return config_text
