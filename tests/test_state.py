"""Tests for the persisted search state."""

import logging

import pydantic
import pytest

from projector_aligner.persistence import MemoryStore
from projector_aligner.state import STATE_VERSION, SearchPhase, SearchState
from projector_aligner.transform import IDENTITY_ROTATION, Transform


def test_fresh_state_defaults() -> None:
    state = SearchState.fresh("random_walk")
    assert state.strategy == "random_walk"
    assert state.state_version == STATE_VERSION
    assert state.phase is SearchPhase.SEARCHING
    assert state.initialized is False
    assert state.step == 0
    assert state.transform == Transform((0, 0, 0), IDENTITY_ROTATION)
    assert state.previous_transform == state.transform
    assert state.candidates == ()


def test_flat_encoding_uses_plain_strings() -> None:
    state = SearchState(
        strategy="cell_scan",
        initialized=True,
        offset=(-1, 2, 3),
        candidates=((0, 0, 1), (1, 0, 0)),
        current_fitness=0.25,
    )
    flat = state.to_flat()
    assert flat["offset"] == "-1,2,3"
    assert flat["candidates"] == "0,0,1;1,0,0"
    assert flat["initialized"] == "true"
    assert flat["phase"] == "searching"
    assert flat["current_fitness"] == "0.25"
    assert all(isinstance(value, str) for value in flat.values())


def test_state_survives_a_store_round_trip() -> None:
    state = SearchState(
        strategy="annealed",
        phase=SearchPhase.EXHAUSTED,
        initialized=True,
        step=7,
        offset=(-1, 0, 4),
        rotation=5,
        previous_offset=(0, 0, 4),
        previous_rotation=63,
        current_fitness=0.125,
        previous_fitness=0.1,
        stall=3,
        best_in_rotation=0.5,
        cursor=2,
        rotation_index=11,
        candidates=((0, 0, 1), (-2, 1, 0)),
    )
    store = MemoryStore()
    store.save(state.to_flat())
    assert SearchState.from_flat(store.load(), strategy="annealed") == state


def test_absent_blank_and_unknown_keys_fall_back_to_defaults() -> None:
    state = SearchState.from_flat({"step": "3", "offset": "", "legacy_key": "x"})
    assert state.step == 3
    assert state.offset == (0, 0, 0)
    assert state.rotation == IDENTITY_ROTATION


def test_state_from_another_strategy_is_discarded() -> None:
    flat = SearchState(strategy="annealed", step=9, initialized=True).to_flat()
    state = SearchState.from_flat(flat, strategy="cell_scan")
    assert state == SearchState.fresh("cell_scan")


def test_state_written_by_another_version_is_discarded(caplog) -> None:
    flat = SearchState(strategy="cell_scan", step=5, initialized=True).to_flat()
    flat["state_version"] = str(STATE_VERSION + 1)
    with caplog.at_level(logging.WARNING, logger="projector_aligner"):
        state = SearchState.from_flat(flat, strategy="cell_scan")
    assert state == SearchState.fresh("cell_scan")
    assert "version" in caplog.text

    legacy = SearchState.from_flat({"state_version": "0", "strategy": "annealed", "step": "7"})
    assert legacy == SearchState.fresh("annealed")


def test_rotation_code_is_range_checked() -> None:
    with pytest.raises(pydantic.ValidationError):
        SearchState.from_flat({"rotation": "64"})


def test_state_is_immutable() -> None:
    state = SearchState.fresh("random_walk")
    with pytest.raises(pydantic.ValidationError):
        state.step = 4
    assert state.model_copy(update={"step": 4}).step == 4
    assert state.step == 0


@pytest.mark.parametrize(
    ("phase", "terminal"),
    [
        (SearchPhase.SEARCHING, False),
        (SearchPhase.CONVERGED, True),
        (SearchPhase.EXHAUSTED, True),
        (SearchPhase.FAILED, True),
    ],
)
def test_terminal_phases(phase, terminal) -> None:
    assert SearchState(phase=phase).is_terminal is terminal
