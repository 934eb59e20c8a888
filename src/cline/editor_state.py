"""Editor state shared by the renderer and the dispatcher.

One :class:`EditorState` exists per editing session. It is created by the
caller and handed to every component explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

TAB = 0x09
TAB_STOP = 8

# Rows taken by the two status lines at the bottom of the screen
STATUS_ROWS = 2

STATUS_MESSAGE_MAX = 80


def expand_tabs(chars: bytes) -> bytes:
    """Replace each TAB with spaces up to the next multiple-of-8 column."""
    rendered = bytearray()
    for byte in chars:
        if byte == TAB:
            rendered.append(0x20)
            while len(rendered) % TAB_STOP:
                rendered.append(0x20)
        else:
            rendered.append(byte)
    return bytes(rendered)


@dataclass
class Row:
    """One logical line of the document."""

    chars: bytes = b""
    rendered_chars: bytes = field(default=b"", init=False)

    def __post_init__(self) -> None:
        self.update(self.chars)

    @classmethod
    def from_chars(cls, chars: bytes) -> Row:
        return cls(chars)

    def update(self, chars: bytes) -> None:
        """Replace the content and regenerate the rendered form."""
        self.chars = bytes(chars)
        self.rendered_chars = expand_tabs(self.chars)

    @property
    def size(self) -> int:
        return len(self.chars)

    @property
    def rendered_size(self) -> int:
        return len(self.rendered_chars)


@dataclass
class EditorState:
    """Cursor, scroll position, viewport and document of one session.

    ``cursor_x``/``cursor_y`` are relative to the viewport; the logical row
    under the cursor is ``row_offset + cursor_y``. ``screen_rows`` already
    excludes the status lines.
    """

    cursor_x: int = 0
    cursor_y: int = 0
    rows: list[Row] = field(default_factory=list)
    row_offset: int = 0
    column_offset: int = 0
    screen_rows: int = 1
    screen_columns: int = 1
    terminal_raw_mode: bool = False
    dirty: bool = False
    filename: Optional[str] = None
    _status_message: str = field(default="", repr=False)

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def status_message(self) -> str:
        return self._status_message

    @status_message.setter
    def status_message(self, message: str) -> None:
        encoded = message.encode("utf-8")
        if len(encoded) > STATUS_MESSAGE_MAX:
            message = encoded[:STATUS_MESSAGE_MAX].decode("utf-8", errors="ignore")
        self._status_message = message

    def apply_geometry(self, rows: int, columns: int) -> None:
        """Adopt a resolved terminal size and clamp the cursor into it."""
        self.screen_rows = max(rows - STATUS_ROWS, 1)
        self.screen_columns = max(columns, 1)
        if self.cursor_y > self.screen_rows - 1:
            self.cursor_y = self.screen_rows - 1
        if self.cursor_x > self.screen_columns - 1:
            self.cursor_x = self.screen_columns - 1
