"""Error taxonomy for the projector alignment core."""

from __future__ import annotations


class AlignmentError(Exception):
    """Base class for conditions that halt the alignment loop."""


class ConfigurationError(AlignmentError):
    """Raised when the configured tag does not resolve to exactly one projector,
    or when the instance configuration holds an invalid value."""


class DeviceNotReady(AlignmentError):
    """Raised when the projector is not functional or fails to start projecting."""


class SearchExhausted(UserWarning):
    """Candidate space or step budget ran out without convergence.

    Reported as a warning; the last applied transform stays on the device.
    """
