"""Terminal size detection.

The operating system is asked first. When it cannot tell (for instance a
pseudo-terminal layer that never fills in the window size), the size is
probed by moving the cursor as far right and down as it will go and asking
the terminal where it ended up.
"""

from __future__ import annotations

import logging
import re

from cline.errors import GeometryQueryError
from cline.terminal import Terminal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

_REPORT_CURSOR_POSITION = b"\x1b[6n"
_MOVE_TO_BOTTOM_RIGHT = b"\x1b[999C\x1b[999B"
_CURSOR_POSITION_FMT = "\x1b[{};{}H"

# Longest response accepted, terminator excluded
_MAX_RESPONSE_LENGTH = 31

_CURSOR_POSITION_RE = re.compile(rb"^\x1b\[(\d+);(\d+)$")


def parse_cursor_position(response: bytes) -> tuple[int, int]:
    """Parse ``ESC [ rows ; columns`` (without the trailing ``R``).

    Raises :class:`GeometryQueryError` when *response* has any other shape.
    """
    match = _CURSOR_POSITION_RE.match(response)
    if match is None:
        raise GeometryQueryError(f"Malformed cursor position response: {response!r}")
    return int(match.group(1)), int(match.group(2))


class ScreenGeometryResolver:
    """Resolve the terminal size as ``(rows, columns)``."""

    def __init__(self, terminal: Terminal) -> None:
        self._terminal = terminal

    def _write(self, data: bytes) -> None:
        try:
            self._terminal.write(data)
        except OSError as e:
            raise GeometryQueryError(f"Unable to write to the terminal: {e}") from e

    def cursor_position(self) -> tuple[int, int]:
        """Ask the terminal where the cursor is, as 1-based ``(row, column)``."""
        self._write(_REPORT_CURSOR_POSITION)

        response = bytearray()
        while len(response) < _MAX_RESPONSE_LENGTH:
            data = self._terminal.read(1)
            if not data or data == b"R":
                break
            response += data

        if not response:
            raise GeometryQueryError("No response to cursor position query")
        return parse_cursor_position(bytes(response))

    def resolve(self) -> tuple[int, int]:
        rows, columns = self._terminal.get_size()
        if columns:
            logger.debug("Window size reported by the OS: %dx%d", rows, columns)
            return rows, columns

        logger.info("OS did not report a window size, probing with the cursor")
        original_row, original_column = self.cursor_position()

        self._write(_MOVE_TO_BOTTOM_RIGHT)
        rows, columns = self.cursor_position()

        restore = _CURSOR_POSITION_FMT.format(original_row, original_column)
        try:
            self._terminal.write(restore.encode("ascii"))
        except OSError:
            # not recoverable, the size is still valid
            logger.warning("Could not restore cursor to %d;%d", original_row, original_column)

        logger.debug("Window size probed with the cursor: %dx%d", rows, columns)
        return rows, columns
