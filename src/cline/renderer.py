"""Screen rendering with VT100 escape sequences.

A refresh redraws the whole viewport, the two status lines and the cursor
into one :class:`~cline.render_buffer.RenderBuffer`, which is then written
to the terminal in a single call.
"""

from __future__ import annotations

import logging
from typing import Optional

from cline import __version__
from cline.editor_state import TAB, TAB_STOP, EditorState
from cline.errors import AllocationError
from cline.render_buffer import RenderBuffer
from cline.terminal import Terminal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ANSI escape constants
# ---------------------------------------------------------------------------

HIDE_CURSOR = b"\x1b[?25l"
SHOW_CURSOR = b"\x1b[?25h"
CURSOR_HOME = b"\x1b[H"
CLEAR_LINE = b"\x1b[0K"
FOREGROUND_RESET = b"\x1b[39m"
INVERSE_VIDEO = b"\x1b[7m"
RESET_ATTRIBUTES = b"\x1b[0m"
NEWLINE = b"\r\n"
_CURSOR_POSITION_FMT = "\x1b[{};{}H"

WELCOME_BANNER = f"Common Lisp mINimal Editor -- v{__version__}"
NO_NAME = "<no-name>"
FILENAME_WIDTH = 20


def cursor_screen_column(state: EditorState) -> int:
    """Return the 0-based on-screen column of the cursor.

    The stored cursor indexes ``chars``; on screen each TAB stretches to the
    next tab stop, so the column is found by scanning the row.
    """
    file_row = state.row_offset + state.cursor_y
    if file_row >= state.row_count:
        return state.cursor_x

    row = state.rows[file_row]
    rx = 0
    for j in range(state.column_offset, state.column_offset + state.cursor_x):
        if j < row.size and row.chars[j] == TAB:
            rx += (TAB_STOP - 1) - (rx % TAB_STOP)
        rx += 1
    return rx


def status_texts(state: EditorState) -> tuple[str, str]:
    """Return the left and right texts of the first status line."""
    filename = (state.filename or NO_NAME)[:FILENAME_WIDTH]
    modified = "(modified)" if state.dirty else ""
    left = f"{filename} - {state.row_count} lines {modified}"
    right = f"{state.row_offset + state.cursor_y + 1}/{state.row_count}"
    return left, right


class ScreenRenderer:
    """Draw an :class:`EditorState` on a terminal."""

    def __init__(self, terminal: Terminal, max_frame_size: Optional[int] = None) -> None:
        self._terminal = terminal
        self._max_frame_size = max_frame_size

    def compose(self, state: EditorState) -> RenderBuffer:
        """Build a complete frame for *state* without writing it."""
        ab = RenderBuffer(self._max_frame_size)
        try:
            ab.append(HIDE_CURSOR)
            ab.append(CURSOR_HOME)
            self._draw_rows(ab, state)
            self._draw_status_bar(ab, state)
            self._draw_message_bar(ab, state)

            position = _CURSOR_POSITION_FMT.format(
                state.cursor_y + 1, cursor_screen_column(state) + 1
            )
            ab.append(position.encode("ascii"))
            ab.append(SHOW_CURSOR)
        except AllocationError:
            ab.destroy()
            raise
        return ab

    def refresh(self, state: EditorState) -> None:
        """Redraw the screen with one write to the terminal.

        A frame that cannot be built is dropped whole rather than written
        truncated.
        """
        try:
            ab = self.compose(state)
        except AllocationError:
            logger.exception("Screen refresh aborted")
            return
        ab.flush(self._terminal.write)

    # -- private: frame sections -------------------------------------------

    def _draw_rows(self, ab: RenderBuffer, state: EditorState) -> None:
        for y in range(state.screen_rows):
            file_row = state.row_offset + y

            if file_row >= state.row_count:
                if state.row_count == 0 and y == state.screen_rows // 3:
                    self._draw_welcome(ab, state.screen_columns)
                else:
                    ab.append(b"~" + CLEAR_LINE + NEWLINE)
                continue

            row = state.rows[file_row]
            start = state.column_offset
            ab.append(row.rendered_chars[start:start + state.screen_columns])
            ab.append(FOREGROUND_RESET)
            ab.append(CLEAR_LINE)
            ab.append(NEWLINE)

    def _draw_welcome(self, ab: RenderBuffer, columns: int) -> None:
        welcome = WELCOME_BANNER.encode("ascii")[:columns]
        padding = (columns - len(welcome)) // 2
        if padding > 0:
            ab.append(b"~")
            padding -= 1
        ab.append(b" " * padding)
        ab.append(welcome)
        ab.append(CLEAR_LINE + NEWLINE)

    def _draw_status_bar(self, ab: RenderBuffer, state: EditorState) -> None:
        ab.append(CLEAR_LINE)
        ab.append(INVERSE_VIDEO)

        left, right = status_texts(state)
        status = left.encode("utf-8")[:state.screen_columns]
        rstatus = right.encode("ascii")
        ab.append(status)

        length = len(status)
        while length < state.screen_columns:
            if state.screen_columns - length == len(rstatus):
                ab.append(rstatus)
                break
            ab.append(b" ")
            length += 1
        ab.append(RESET_ATTRIBUTES + NEWLINE)

    def _draw_message_bar(self, ab: RenderBuffer, state: EditorState) -> None:
        ab.append(CLEAR_LINE)
        message = state.status_message.encode("utf-8")
        if message:
            ab.append(message[:state.screen_columns])
