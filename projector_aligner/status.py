"""Status surface for human-readable progress.

The driver's log records are mirrored onto a text surface as
``[Info] message`` lines. The surface is purely observational.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator


def level_label(levelno: int) -> str:
    if levelno >= logging.ERROR:
        return "Error"
    if levelno >= logging.WARNING:
        return "Warning"
    return "Info"


class StatusSurface(ABC):
    @abstractmethod
    def write_text(self, text: str, append: bool = True) -> None:
        pass


class TextBuffer(StatusSurface):
    """Surface keeping its text in memory."""

    def __init__(self) -> None:
        self.text = ""

    def write_text(self, text: str, append: bool = True) -> None:
        self.text = self.text + text if append else text

    @property
    def lines(self) -> list[str]:
        return self.text.splitlines()


class StatusPanelHandler(logging.Handler):
    def __init__(self, surface: StatusSurface, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.surface = surface

    def emit(self, record: logging.LogRecord) -> None:
        try:
            line = f"[{level_label(record.levelno)}] {record.getMessage()}\n"
            self.surface.write_text(line, append=True)
        except Exception:
            self.handleError(record)


@contextmanager
def attached_surface(
    surface: StatusSurface | None, logger_name: str = "projector_aligner"
) -> Iterator[None]:
    """Clear ``surface`` and mirror the package's log records onto it."""
    if surface is None:
        yield
        return
    surface.write_text("", append=False)
    logger = logging.getLogger(logger_name)
    handler = StatusPanelHandler(surface)
    previous_level = logger.level
    logger.addHandler(handler)
    if logger.getEffectiveLevel() > logging.INFO:
        logger.setLevel(logging.INFO)
    try:
        yield
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)
