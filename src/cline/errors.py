"""Exception types raised by the terminal-control core."""

from __future__ import annotations


class ClineError(Exception):
    """Base class for every error raised by cline."""


class NotATerminalError(ClineError):
    """The input file descriptor is not an interactive terminal."""


class TerminalControlError(ClineError):
    """Querying or setting the terminal attributes failed."""


class TerminalReadError(ClineError):
    """Reading from the input device failed."""


class GeometryQueryError(ClineError):
    """The cursor-position protocol got a malformed or missing response."""


class AllocationError(ClineError):
    """A render buffer could not grow to hold appended bytes."""
