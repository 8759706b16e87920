"""Command-line host for the alignment driver.

Drives a simulated projector tick by tick, the way the in-game scheduler
would, until the driver reports a halting outcome or the tick budget runs out.
"""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence

import numpy as np
import yaml

from projector_aligner.config import DEFAULT_CONFIG_PATH, STRATEGY_NAMES
from projector_aligner.devices.mock import InMemoryRegistry, SimulatedProjector
from projector_aligner.driver import RESET_COMMAND, AlignmentDriver, TickOutcome, TickReport
from projector_aligner.persistence import KeyValueStore, MemoryStore, YamlFileStore
from projector_aligner.state import SearchState
from projector_aligner.status import TextBuffer

DEFAULT_TICKS = 2000

# An L-shaped blueprint whose structure sits two cells over and one up.
DEMO_SCENARIO: dict[str, Any] = {
    "name": "Projector [RPA]",
    "position": [0, 0, 0],
    "blueprint": [[0, 0, 0], [1, 0, 0], [2, 0, 0], [0, 1, 0]],
    "structure": [[2, 1, 0], [3, 1, 0], [4, 1, 0], [2, 2, 0]],
}


@dataclass
class RunnerCLIConfig:
    config_path: Path
    state_path: Path | None
    scenario_path: Path | None
    strategy: str | None
    max_steps: int | None
    ticks: int
    seed: int | None
    reset: bool
    verbose: bool


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Align a simulated projector with its structure, one tick at a time."
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Instance configuration YAML (defaults to configs/aligner.yaml; written if missing).",
    )
    parser.add_argument(
        "--state",
        type=Path,
        help="File holding the persisted search state (kept in memory when omitted).",
    )
    parser.add_argument(
        "--scenario",
        type=Path,
        help="YAML or JSON file with name, position, orientation, blueprint and structure.",
    )
    parser.add_argument(
        "--strategy",
        choices=list(STRATEGY_NAMES),
        help="Override the configured search strategy.",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        help="Override the strategy step budget.",
    )
    parser.add_argument(
        "--ticks",
        type=int,
        default=DEFAULT_TICKS,
        help=f"Stop after this many ticks even if still searching (default {DEFAULT_TICKS}).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Seed for the random strategies.",
    )
    parser.add_argument(
        "--reset",
        action="store_true",
        help="Clear the persisted search state before the first tick.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print the status panel after every tick.",
    )
    return parser


def parse_args(args: Sequence[str] | None = None) -> RunnerCLIConfig:
    parser = build_argument_parser()
    namespace = parser.parse_args(args)
    if namespace.ticks < 1:
        parser.error("--ticks must be at least 1.")
    if namespace.max_steps is not None and namespace.max_steps < 0:
        parser.error("--max-steps must be >= 0.")
    return RunnerCLIConfig(
        config_path=namespace.config,
        state_path=namespace.state,
        scenario_path=namespace.scenario,
        strategy=namespace.strategy,
        max_steps=namespace.max_steps,
        ticks=namespace.ticks,
        seed=namespace.seed,
        reset=bool(namespace.reset),
        verbose=bool(namespace.verbose),
    )


def load_scenario(path: Path | None) -> dict[str, Any]:
    if path is None:
        return dict(DEMO_SCENARIO)
    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(payload, dict):
        raise ValueError(f"scenario {path} must be a mapping")
    for key in ("blueprint", "structure"):
        if not payload.get(key):
            raise ValueError(f"scenario {path} is missing '{key}'")
    return payload


def build_projector(
    scenario: Mapping[str, Any], storage: KeyValueStore
) -> SimulatedProjector:
    """Build the simulated device, resuming the transform a saved search left on it."""
    orientation = scenario.get("orientation")
    saved = storage.load()
    return SimulatedProjector(
        str(scenario.get("name", DEMO_SCENARIO["name"])),
        blueprint=scenario["blueprint"],
        structure=scenario["structure"],
        position=tuple(scenario.get("position", (0, 0, 0))),
        orientation=None if orientation is None else np.asarray(orientation, dtype=int),
        storage=storage,
        initial=SearchState.from_flat(saved).transform if saved else None,
    )


def cli_overrides(cli: RunnerCLIConfig) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if cli.strategy:
        overrides["strategy"] = cli.strategy
    if cli.max_steps is not None:
        overrides["max_steps"] = cli.max_steps
    return overrides


def run_alignment(
    driver: AlignmentDriver,
    ticks: int,
    *,
    reset: bool = False,
    status: TextBuffer | None = None,
) -> TickReport:
    """Tick until a halting outcome or ``ticks`` ticks, returning the last report."""
    if reset:
        report = driver.tick(RESET_COMMAND)
        print(f"[runner] {report.message}")
        if report.outcome is TickOutcome.FATAL:
            return report
    report = driver.tick()
    for index in range(1, ticks + 1):
        if status is not None:
            print(status.text, end="")
        if report.halts or index == ticks:
            break
        report = driver.tick()
    return report


def main(args: Sequence[str] | None = None) -> int:
    cli = parse_args(args)
    logging.basicConfig(
        level=logging.INFO if cli.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        scenario = load_scenario(cli.scenario_path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"[runner] invalid scenario: {exc}", file=sys.stderr)
        return 2

    storage = YamlFileStore(cli.state_path) if cli.state_path else MemoryStore()
    try:
        projector = build_projector(scenario, storage)
    except ValueError as exc:
        print(f"[runner] unreadable search state in {cli.state_path}: {exc}", file=sys.stderr)
        return 2
    rng = np.random.default_rng(cli.seed)
    status = TextBuffer() if cli.verbose else None
    driver = AlignmentDriver(
        InMemoryRegistry([projector]),
        YamlFileStore(cli.config_path),
        status=status,
        rng_factory=lambda: rng,
        overrides=cli_overrides(cli),
    )
    print(
        f"[runner] starting projector={projector.name} ticks={cli.ticks} "
        f"strategy={cli.strategy or 'config'} config={cli.config_path}"
    )
    report = run_alignment(driver, cli.ticks, reset=cli.reset, status=status)
    print(
        f"[runner] finished outcome={report.outcome.value} phase={report.phase.value} "
        f"step={report.step} fitness={report.fitness} transform={projector.current}"
    )
    if report.message:
        print(f"[runner] {report.message}")
    return 0 if report.outcome in (TickOutcome.SUCCESS, TickOutcome.CONTINUE) else 1


if __name__ == "__main__":
    raise SystemExit(main())
