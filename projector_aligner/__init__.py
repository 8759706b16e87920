"""Projector alignment search.

Finds the offset and rotation that line a projector's blueprint up with the
structure it is mounted on, one bounded tick at a time.
"""

from projector_aligner.driver import AlignmentDriver, DriverPhase, TickOutcome, TickReport

__all__ = ["AlignmentDriver", "DriverPhase", "TickOutcome", "TickReport"]
