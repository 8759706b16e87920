"""Configuration for the aligning script instance.

The options live in a YAML text blob attached to the script instance. When
the blob is empty, unparsable, or lacks the projector tag, the documented
defaults are written back so the user has a template to edit.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import yaml

from projector_aligner.errors import ConfigurationError

STRATEGY_NAMES = ("random_walk", "cell_scan", "lattice_scan", "annealed")
DEFAULT_CONFIG_PATH = Path("configs/aligner.yaml")

DEFAULT_CONFIG_TEXT = """\
projector:
  # The tag of the projector to align, matched as [tag] in its name
  tag: RPA
options:
  # random_walk, cell_scan, lattice_scan or annealed
  strategy: random_walk
  # Maximum number of steps; empty uses the strategy default
  max_steps:
  # random_walk: chance to keep a change that did not improve fitness
  force_accept_rate: 0.05
  # random_walk: chance that a kept move shifts the offset rather than rotating
  offset_mutation_rate: 0.95
  # annealed: chance to perturb the offset without an improvement
  force_apply_rate: 0.01
  # annealed: per-axis chance of each +1 and -1 draw
  axis_mutation_rate: 0.15
  # annealed: ticks without improvement before trying the next rotation
  stall_threshold: 100

# Repair projector alignment
#
# Aligns the projector tagged [RPA] with the grid and keeps it configured
# for repairs. Rerun the script after updating the blueprint.
"""


@dataclass(frozen=True)
class AlignerConfig:
    tag: str = "RPA"
    strategy: str = "random_walk"
    max_steps: int | None = None
    force_accept_rate: float = 0.05
    offset_mutation_rate: float = 0.95
    force_apply_rate: float = 0.01
    axis_mutation_rate: float = 0.15
    stall_threshold: int = 100

    def __post_init__(self) -> None:
        if not self.tag:
            raise ConfigurationError("projector tag must not be empty")
        if self.strategy not in STRATEGY_NAMES:
            raise ConfigurationError(
                "unknown strategy '%s'; expected one of %s"
                % (self.strategy, ", ".join(STRATEGY_NAMES))
            )
        if self.max_steps is not None and self.max_steps < 0:
            raise ConfigurationError(f"max_steps must be >= 0, got {self.max_steps}")
        if self.stall_threshold < 0:
            raise ConfigurationError(
                f"stall_threshold must be >= 0, got {self.stall_threshold}"
            )
        for name in (
            "force_accept_rate",
            "offset_mutation_rate",
            "force_apply_rate",
            "axis_mutation_rate",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value}")


def _env_override(key: str, default: str) -> str:
    value = os.getenv(key)
    if value is None or value == "":
        return default
    return value


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def _option(options: Mapping[str, Any], key: str, default: Any) -> Any:
    value = options.get(key)
    if value is None or value == "":
        return default
    return value


def parse_config_text(text: str) -> dict[str, Any] | None:
    """Return the raw mapping, or None when the text needs the default template."""
    if not text or not text.strip():
        return None
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError:
        return None
    if not isinstance(payload, dict):
        return None
    projector = payload.get("projector")
    if not isinstance(projector, dict) or not projector.get("tag"):
        return None
    return payload


def config_from_dict(payload: Mapping[str, Any]) -> AlignerConfig:
    projector = payload.get("projector") or {}
    options = payload.get("options") or {}
    if not isinstance(options, dict):
        options = {}
    defaults = AlignerConfig()
    try:
        return AlignerConfig(
            tag=_env_override("PROJECTOR_ALIGNER_TAG", str(projector.get("tag", defaults.tag))),
            strategy=_env_override(
                "PROJECTOR_ALIGNER_STRATEGY",
                str(options.get("strategy") or defaults.strategy),
            ),
            max_steps=_optional_int(options.get("max_steps")),
            force_accept_rate=float(
                _option(options, "force_accept_rate", defaults.force_accept_rate)
            ),
            offset_mutation_rate=float(
                _option(options, "offset_mutation_rate", defaults.offset_mutation_rate)
            ),
            force_apply_rate=float(
                _option(options, "force_apply_rate", defaults.force_apply_rate)
            ),
            axis_mutation_rate=float(
                _option(options, "axis_mutation_rate", defaults.axis_mutation_rate)
            ),
            stall_threshold=int(
                _option(options, "stall_threshold", defaults.stall_threshold)
            ),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"invalid option value: {exc}") from exc


def load_aligner_config(text: str) -> tuple[AlignerConfig, bool]:
    """Parse the instance blob.

    Returns the config and whether the default template should be written
    back (the blob was missing, unparsable, or had no projector tag).
    """
    payload = parse_config_text(text)
    if payload is None:
        return config_from_dict(yaml.safe_load(DEFAULT_CONFIG_TEXT)), True
    return config_from_dict(payload), False

