"""Flat key-value text stores.

Search state is kept on the device so it survives reconfiguration of the
aligning script; the user options are kept on the script instance. Both are
plain text blobs holding a flat YAML mapping of strings.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Mapping

import yaml

_LOGGER = logging.getLogger(__name__)


def dumps_flat(mapping: Mapping[str, object]) -> str:
    payload = {str(key): str(value) for key, value in mapping.items()}
    return yaml.safe_dump(payload, default_flow_style=False, sort_keys=True)


def loads_flat(text: str) -> dict[str, str]:
    """Parse a flat mapping; anything unreadable yields an empty mapping."""
    if not text or not text.strip():
        return {}
    try:
        payload = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        _LOGGER.warning("discarding unparsable state blob: %s", exc)
        return {}
    if not isinstance(payload, dict):
        return {}
    return {
        str(key): "" if value is None else str(value)
        for key, value in payload.items()
        if not isinstance(value, (dict, list))
    }


class KeyValueStore(ABC):
    """Text blob with a flat key-value view on top."""

    @abstractmethod
    def read_text(self) -> str:
        pass

    @abstractmethod
    def write_text(self, text: str) -> None:
        pass

    def load(self) -> dict[str, str]:
        return loads_flat(self.read_text())

    def save(self, mapping: Mapping[str, object]) -> None:
        self.write_text(dumps_flat(mapping))

    def clear(self) -> None:
        self.write_text("")


class MemoryStore(KeyValueStore):
    def __init__(self, text: str = "") -> None:
        self.text = text
        self.writes = 0

    def read_text(self) -> str:
        return self.text

    def write_text(self, text: str) -> None:
        self.text = text
        self.writes += 1


class YamlFileStore(KeyValueStore):
    """Store backed by a file; a missing file reads as empty."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def read_text(self) -> str:
        if not self.path.exists():
            return ""
        return self.path.read_text(encoding="utf-8")

    def write_text(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        tmp_path.replace(self.path)

    def __repr__(self) -> str:
        return f"<YamlFileStore path={str(self.path)!r}>"
