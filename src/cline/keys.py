"""Keyboard input decoding for terminals in raw mode.

Raw input arrives one byte at a time. Plain bytes are key events on their
own; ``ESC`` may either be a lone keypress or the start of a ``CSI``
sequence such as ``ESC [ A``. The decoder tells the two apart with the
raw-mode read timeout: if the bytes after ``ESC`` do not arrive in time,
the ``ESC`` was typed by itself.

Decoding is an explicit state machine. :func:`decode_step` is a pure
transition function over ``(state, byte)`` and :class:`KeyDecoder` drives
it from a terminal.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Union

from cline.terminal import Terminal

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------

KeyEvent = int


# ---------------------------------------------------------------------------
# Key codes
# ---------------------------------------------------------------------------


class Key:
    """Named key codes.

    Codes below 256 are the literal byte reported by the terminal. The
    synthesized codes start at 1000 so they never collide with a byte.
    """

    TAB = 9
    ENTER = 13
    ESC = 27
    BACKSPACE = 127

    ARROW_LEFT = 1000
    ARROW_RIGHT = 1001
    ARROW_UP = 1002
    ARROW_DOWN = 1003
    DEL = 1004


ARROW_KEYS: frozenset[int] = frozenset(
    {Key.ARROW_LEFT, Key.ARROW_RIGHT, Key.ARROW_UP, Key.ARROW_DOWN}
)

_KEY_NAMES: dict[int, str] = {
    Key.TAB: "tab",
    Key.ENTER: "enter",
    Key.ESC: "esc",
    Key.BACKSPACE: "backspace",
    Key.ARROW_LEFT: "left",
    Key.ARROW_RIGHT: "right",
    Key.ARROW_UP: "up",
    Key.ARROW_DOWN: "down",
    Key.DEL: "delete",
}


def is_synthesized(key: KeyEvent) -> bool:
    return key >= Key.ARROW_LEFT


def key_name(key: KeyEvent) -> str:
    """Return a short printable name for *key*, e.g. ``"up"`` or ``"ctrl+a"``."""
    name = _KEY_NAMES.get(key)
    if name is not None:
        return name
    if key < 32:
        return f"ctrl+{chr(key + 96)}"
    if 32 <= key < 127:
        return chr(key)
    return f"0x{key:02x}"


# ---------------------------------------------------------------------------
# Decoder state machine
# ---------------------------------------------------------------------------


class DecoderState(enum.Enum):
    START = "start"
    SAW_ESC = "saw_esc"
    SAW_BRACKET = "saw_bracket"
    SAW_ESC_OTHER = "saw_esc_other"


@dataclass(frozen=True)
class SawDigit:
    """Inside ``ESC [ <digit>``, waiting for ``~``."""

    digit: int


State = Union[DecoderState, SawDigit]

_ESC_BYTE = 0x1B
_BRACKET = ord("[")
_TILDE = ord("~")

# ESC [ <final>
_CSI_FINAL_KEYS: dict[int, int] = {
    ord("A"): Key.ARROW_UP,
    ord("B"): Key.ARROW_DOWN,
    ord("C"): Key.ARROW_RIGHT,
    ord("D"): Key.ARROW_LEFT,
}

# ESC [ <digit> ~
_CSI_TILDE_KEYS: dict[int, int] = {
    ord("3"): Key.DEL,
}

# A timeout in these states means ESC was pressed on its own
_TIMEOUT_MEANS_ESC = frozenset(
    {DecoderState.SAW_ESC, DecoderState.SAW_BRACKET, DecoderState.SAW_ESC_OTHER}
)


def _is_digit(byte: int) -> bool:
    return ord("0") <= byte <= ord("9")


def decode_step(state: State, byte: int) -> tuple[Optional[KeyEvent], State]:
    """Advance the decoder by one input byte.

    Returns ``(event, next_state)``. ``event`` is ``None`` while a sequence
    is still being collected and also when a complete sequence is dropped
    as unrecognized; in both cases the caller keeps reading.
    """
    if isinstance(state, SawDigit):
        if byte == _TILDE:
            return _CSI_TILDE_KEYS.get(state.digit), DecoderState.START
        return None, DecoderState.START

    if state is DecoderState.START:
        if byte == _ESC_BYTE:
            return None, DecoderState.SAW_ESC
        return byte, DecoderState.START

    if state is DecoderState.SAW_ESC:
        if byte == _BRACKET:
            return None, DecoderState.SAW_BRACKET
        # ESC followed by something else: one more byte ends the sequence
        return None, DecoderState.SAW_ESC_OTHER

    if state is DecoderState.SAW_ESC_OTHER:
        return None, DecoderState.START

    # SAW_BRACKET
    key = _CSI_FINAL_KEYS.get(byte)
    if key is not None:
        return key, DecoderState.START
    if _is_digit(byte):
        return None, SawDigit(byte)
    return None, DecoderState.START


class KeyDecoder:
    """Read logical key events from a terminal.

    Each call to :meth:`read_key` blocks until an event is decoded. Bytes
    after a lone ``ESC`` are only consumed if they arrive within the read
    timeout, so a bare ``ESC`` never swallows the next keypress.
    """

    def __init__(self, terminal: Terminal) -> None:
        self._terminal = terminal

    def _read_byte(self) -> Optional[int]:
        data = self._terminal.read(1)
        if not data:
            return None
        return data[0]

    def read_key(self, on_idle: Callable[[], None] | None = None) -> KeyEvent:
        """Return the next key event.

        *on_idle* is called every time the read timeout expires while
        waiting for the first byte of a key.
        """
        state: State = DecoderState.START

        while True:
            byte = self._read_byte()

            if byte is None:
                if state is DecoderState.START:
                    if on_idle is not None:
                        on_idle()
                    continue
                if state in _TIMEOUT_MEANS_ESC:
                    return Key.ESC
                # Timed out waiting for "~": sequence dropped
                logger.debug("Dropped incomplete sequence %r", state)
                state = DecoderState.START
                continue

            event, next_state = decode_step(state, byte)
            if next_state is DecoderState.START:
                if event is not None:
                    return event
                if state is not DecoderState.START:
                    logger.debug("Dropped unrecognized escape sequence ending in 0x%02x", byte)
            state = next_state
