"""Tests for the annealed hill climb."""

from projector_aligner.config import AlignerConfig
from projector_aligner.fitness import UnitCounts
from projector_aligner.state import SearchState
from projector_aligner.strategies import AnnealedHillClimb, StrategyOutcome, TickInput
from projector_aligner.transform import Transform


def _climbing_state(**fields) -> SearchState:
    base = dict(
        strategy="annealed",
        initialized=True,
        step=5,
        offset=(1, 1, 1),
        previous_offset=(0, 0, 0),
        previous_fitness=0.2,
        best_in_rotation=0.2,
    )
    base.update(fields)
    return SearchState(**base)


def test_first_tick_reapplies_previous_transform(scripted) -> None:
    state = SearchState(strategy="annealed", previous_offset=(2, 0, 0), previous_rotation=10)
    rng = scripted()
    result = AnnealedHillClimb().step(state, TickInput(UnitCounts(10, 9, 0), rng))

    assert result.outcome is StrategyOutcome.CONTINUE
    assert result.transform == Transform((2, 0, 0), 10)
    assert result.state.initialized
    assert result.state.previous_fitness == 0.1
    assert rng.random_calls == 0


def test_complete_projection_succeeds(scripted) -> None:
    result = AnnealedHillClimb().step(
        _climbing_state(), TickInput(UnitCounts(10, 0, 0), scripted())
    )
    assert result.outcome is StrategyOutcome.SUCCESS
    assert result.transform is None


def test_budget_overrun_aborts(scripted) -> None:
    strategy = AnnealedHillClimb(AlignerConfig(strategy="annealed", max_steps=4))
    result = strategy.step(_climbing_state(step=5), TickInput(UnitCounts(10, 5, 0), scripted()))
    assert result.outcome is StrategyOutcome.ABORT
    assert result.transform is None


def test_improvement_draws_independent_moves_per_axis(scripted) -> None:
    # force roll, then (+1, -1) draws for x, y and z
    rng = scripted(randoms=[0.5, 0.1, 0.9, 0.9, 0.1, 0.1, 0.1])
    result = AnnealedHillClimb().step(_climbing_state(), TickInput(UnitCounts(10, 5, 0), rng))

    # z drew both moves, which cancel out
    assert result.transform.offset == (2, 0, 1)
    assert result.state.previous_offset == (1, 1, 1)
    assert result.state.previous_fitness == 0.5
    assert result.state.stall == 0
    assert result.state.best_in_rotation == 0.5
    assert rng.random_calls == 7


def test_no_improvement_rolls_offset_back(scripted) -> None:
    state = _climbing_state(
        offset=(3, 0, 0),
        previous_offset=(1, 0, 0),
        previous_fitness=0.5,
        best_in_rotation=0.6,
        stall=4,
    )
    rng = scripted(randoms=[0.5])
    result = AnnealedHillClimb().step(state, TickInput(UnitCounts(10, 7, 0), rng))

    assert result.transform.offset == (1, 0, 0)
    assert result.state.previous_fitness == 0.5
    assert result.state.stall == 5


def test_forced_apply_without_improvement_keeps_current_offset(scripted) -> None:
    rng = scripted(randoms=[0.001] + [0.99] * 6)
    state = _climbing_state(previous_fitness=0.5)
    result = AnnealedHillClimb().step(state, TickInput(UnitCounts(10, 7, 0), rng))

    assert result.transform.offset == (1, 1, 1)
    assert result.state.previous_offset == (1, 1, 1)
    assert result.state.previous_fitness == 0.3


def test_stall_past_threshold_moves_to_next_rotation_code(scripted) -> None:
    strategy = AnnealedHillClimb(AlignerConfig(strategy="annealed", stall_threshold=2))
    state = _climbing_state(rotation=63, stall=2, best_in_rotation=0.8, previous_fitness=0.5)
    result = strategy.step(state, TickInput(UnitCounts(10, 7, 0), scripted(randoms=[0.5])))

    assert result.transform.rotation == 0
    assert result.state.stall == 0
    assert result.state.best_in_rotation == 0.0
    assert result.state.previous_rotation == 63


def test_constant_fitness_escalates_rotation_periodically(constant_random) -> None:
    strategy = AnnealedHillClimb(AlignerConfig(strategy="annealed", stall_threshold=3))
    rng = constant_random(0.99)
    counts = UnitCounts(10, 7, 0)
    state = AnnealedHillClimb().step(SearchState.fresh("annealed"), TickInput(counts, rng)).state
    start = state.rotation

    rotations = []
    for _ in range(10):
        state = strategy.step(state, TickInput(counts, rng)).state
        rotations.append(state.rotation)

    assert rotations[3] == start
    assert rotations[4] == start + 1
    assert rotations[8] == start + 1
    assert rotations[9] == start + 2
    assert state.step == 10


def test_threshold_plus_one_flat_ticks_advance_rotation_once(constant_random) -> None:
    threshold = 3
    strategy = AnnealedHillClimb(AlignerConfig(strategy="annealed", stall_threshold=threshold))
    state = _climbing_state(rotation=20, previous_fitness=0.3, best_in_rotation=0.5, stall=0)
    rng = constant_random(0.99)

    for _ in range(threshold + 1):
        state = strategy.step(state, TickInput(UnitCounts(10, 7, 0), rng)).state

    assert state.rotation == 21
    assert state.stall == 0
