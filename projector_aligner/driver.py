"""One-tick alignment driver.

Each call to :meth:`AlignmentDriver.tick` does a bounded unit of work and
returns. Nothing is carried in memory between ticks: configuration comes from
the script instance store, search progress from the device store, and both
are re-read on every tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Mapping

import numpy as np

from projector_aligner.config import DEFAULT_CONFIG_TEXT, AlignerConfig, load_aligner_config
from projector_aligner.devices.base import DeviceRegistry, ProjectorDevice, resolve_device
from projector_aligner.errors import AlignmentError, DeviceNotReady, SearchExhausted
from projector_aligner.persistence import KeyValueStore
from projector_aligner.state import SearchPhase, SearchState
from projector_aligner.status import StatusSurface, attached_surface
from projector_aligner.strategies import (
    RandomSource,
    StrategyOutcome,
    TickInput,
    create_strategy,
)
from projector_aligner.transform import Transform

_LOGGER = logging.getLogger(__name__)

RESET_COMMAND = "reset"


class DriverPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVATING = "activating"
    SEARCHING = "searching"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


class TickOutcome(str, Enum):
    CONTINUE = "continue"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"
    FATAL = "fatal"
    RESET = "reset"


@dataclass(frozen=True)
class TickReport:
    outcome: TickOutcome
    phase: DriverPhase
    transform: Transform | None = None
    fitness: float | None = None
    step: int | None = None
    message: str = ""
    issue: Exception | None = None

    @property
    def halts(self) -> bool:
        """The host should stop scheduling ticks."""
        return self.outcome is not TickOutcome.CONTINUE


_STRATEGY_OUTCOMES = {
    StrategyOutcome.CONTINUE: (TickOutcome.CONTINUE, DriverPhase.SEARCHING, SearchPhase.SEARCHING),
    StrategyOutcome.SUCCESS: (TickOutcome.SUCCESS, DriverPhase.CONVERGED, SearchPhase.CONVERGED),
    StrategyOutcome.EXHAUSTED: (TickOutcome.EXHAUSTED, DriverPhase.EXHAUSTED, SearchPhase.EXHAUSTED),
    StrategyOutcome.ABORT: (TickOutcome.FATAL, DriverPhase.FAILED, SearchPhase.FAILED),
}

_FINISHED_SEARCHES = {
    SearchPhase.CONVERGED: (TickOutcome.SUCCESS, DriverPhase.CONVERGED),
    SearchPhase.EXHAUSTED: (TickOutcome.EXHAUSTED, DriverPhase.EXHAUSTED),
    SearchPhase.FAILED: (TickOutcome.FATAL, DriverPhase.FAILED),
}


class AlignmentDriver:
    """Resolve, activate, search, apply, persist; once per tick.

    Args:
        registry: where the projector is looked up by its ``[tag]``.
        config_store: script-instance store with the user options.
        status: optional surface refreshed with this tick's messages.
        rng_factory: builds the random source for a tick. Called once per
            tick so draws are never reused across ticks.
        overrides: option values that win over the instance configuration,
            for hosts that set them outside the blob (the CLI runner).
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        config_store: KeyValueStore,
        *,
        status: StatusSurface | None = None,
        rng_factory: Callable[[], RandomSource] = np.random.default_rng,
        overrides: Mapping[str, Any] | None = None,
    ) -> None:
        self.registry = registry
        self.config_store = config_store
        self.status = status
        self.rng_factory = rng_factory
        self.overrides = dict(overrides or {})
        self.phase = DriverPhase.UNINITIALIZED

    def tick(self, argument: str = "") -> TickReport:
        with attached_surface(self.status):
            try:
                report = self._tick(argument)
            except AlignmentError as exc:
                _LOGGER.error("%s", exc)
                report = TickReport(
                    TickOutcome.FATAL, DriverPhase.FAILED, message=str(exc), issue=exc
                )
            except Exception as exc:
                _LOGGER.exception("Alignment tick failed: %s", exc)
                report = TickReport(
                    TickOutcome.FATAL,
                    DriverPhase.FAILED,
                    message=f"unexpected error: {exc}",
                    issue=exc,
                )
        self.phase = report.phase
        return report

    def _tick(self, argument: str) -> TickReport:
        self.phase = DriverPhase.UNINITIALIZED
        config = self._load_config()
        _LOGGER.info("Projector tag set to: [%s]", config.tag)

        self.phase = DriverPhase.ACTIVATING
        device = resolve_device(self.registry, config.tag)
        _LOGGER.info("Projector found: %s", device.name)

        if argument.strip().lower() == RESET_COMMAND:
            device.storage.clear()
            _LOGGER.info("Search state on [%s] cleared.", device.name)
            return TickReport(
                TickOutcome.RESET,
                DriverPhase.UNINITIALIZED,
                message="search state cleared",
            )

        self._activate(device)
        self.phase = DriverPhase.SEARCHING
        counts = device.unit_counts()
        state = SearchState.from_flat(device.storage.load(), strategy=config.strategy)

        if counts.is_complete:
            converged = state.model_copy(
                update={"phase": SearchPhase.CONVERGED, "current_fitness": 1.0}
            )
            if converged != state:
                device.storage.save(converged.to_flat())
            _LOGGER.info("Projection on [%s] is aligned.", device.name)
            return TickReport(
                TickOutcome.SUCCESS,
                DriverPhase.CONVERGED,
                fitness=1.0,
                step=state.step,
                message="projection aligned",
            )

        if state.is_terminal:
            outcome, phase = _FINISHED_SEARCHES[state.phase]
            _LOGGER.info(
                "Search on [%s] already %s; send '%s' to start over.",
                device.name,
                state.phase.value,
                RESET_COMMAND,
            )
            return TickReport(
                outcome,
                phase,
                fitness=counts.fitness,
                step=state.step,
                message=f"search already {state.phase.value}",
            )

        return self._search(config, device, state, counts)

    def _search(self, config, device, state, counts) -> TickReport:
        strategy = create_strategy(config)
        budget = strategy.max_steps if strategy.max_steps is not None else "unbounded"
        _LOGGER.info("Aligning projection on [%s]...", device.name)
        _LOGGER.info("Step %d of %s (fitness %.4f)", state.step, budget, counts.fitness)

        result = strategy.step(
            state, TickInput(counts=counts, rng=self.rng_factory(), survey=device)
        )
        if result.transform is not None:
            device.set_offset(result.transform.offset)
            device.set_rotation(result.transform.rotation)
            device.commit()

        outcome, phase, search_phase = _STRATEGY_OUTCOMES[result.outcome]
        device.storage.save(result.state.model_copy(update={"phase": search_phase}).to_flat())

        issue: Exception | None = None
        if outcome is TickOutcome.CONTINUE:
            message = f"applied {result.transform}" if result.transform else "waiting"
            _LOGGER.info("Applied %s", result.transform)
        elif outcome is TickOutcome.SUCCESS:
            message = "projection aligned"
            _LOGGER.info("Projection on [%s] is aligned.", device.name)
        elif outcome is TickOutcome.EXHAUSTED:
            issue = SearchExhausted(
                f"{strategy.name} search exhausted after {result.state.step} steps, "
                f"projection on [{device.name}] is not aligned."
            )
            message = str(issue)
            _LOGGER.warning("%s", issue)
        else:
            message = (
                f"Max steps reached ({strategy.max_steps}), aborting alignment of "
                f"[{device.name}]."
            )
            _LOGGER.error("%s", message)

        return TickReport(
            outcome,
            phase,
            transform=result.transform,
            fitness=counts.fitness,
            step=result.state.step,
            message=message,
            issue=issue,
        )

    def _load_config(self) -> AlignerConfig:
        config, needs_template = load_aligner_config(self.config_store.read_text())
        if needs_template:
            self.config_store.write_text(DEFAULT_CONFIG_TEXT)
            _LOGGER.info("Wrote default configuration template.")
        if self.overrides:
            config = replace(config, **self.overrides)
        return config

    def _activate(self, device: ProjectorDevice) -> None:
        device.start()
        if not device.is_working:
            raise DeviceNotReady(f"{device.name} is not functional.")
        _LOGGER.info("%s is functional.", device.name)
        if not device.is_projecting:
            raise DeviceNotReady(f"Failed to spawn projection on [{device.name}].")
        _LOGGER.info("Successfully spawned projection on [%s].", device.name)
