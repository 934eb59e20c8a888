"""Terminal abstraction for raw-mode input/output.

Provides a ``Terminal`` protocol, a concrete ``ProcessTerminal`` backed by
a pair of file descriptors, and the ``TerminalModeController`` that puts the
input device into raw mode and guarantees it is restored before the process
exits.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
import termios
from typing import Protocol

from cline.errors import NotATerminalError, TerminalControlError, TerminalReadError

logger = logging.getLogger(__name__)

# Indices into the list returned by termios.tcgetattr()
_IFLAG = 0
_OFLAG = 1
_CFLAG = 2
_LFLAG = 3
_CC = 6

# Bytes are returned as soon as one is available, or after 100ms with none.
_READ_MIN_BYTES = 0
_READ_TIMEOUT_DECISECONDS = 1


# ---------------------------------------------------------------------------
# Terminal protocol
# ---------------------------------------------------------------------------


class Terminal(Protocol):
    """Interface for the input/output device pair."""

    @property
    def input_fd(self) -> int: ...

    @property
    def output_fd(self) -> int: ...

    def read(self, count: int = 1) -> bytes: ...

    def write(self, data: bytes) -> None: ...

    def get_size(self) -> tuple[int, int]: ...


# ---------------------------------------------------------------------------
# ProcessTerminal implementation
# ---------------------------------------------------------------------------


class ProcessTerminal:
    """Concrete terminal backed by the process's stdin/stdout descriptors.

    Reads return ``b""`` when the raw-mode read timeout expires without
    input. Every write is one call carrying the whole payload; when
    ``write_log`` (or ``CLINE_WRITE_LOG``) names a file, the bytes are also
    appended there.
    """

    def __init__(
        self,
        input_fd: int | None = None,
        output_fd: int | None = None,
        write_log: str | None = None,
    ) -> None:
        self._input_fd = sys.stdin.fileno() if input_fd is None else input_fd
        self._output_fd = sys.stdout.fileno() if output_fd is None else output_fd
        if write_log is None:
            write_log = os.environ.get("CLINE_WRITE_LOG", "")
        self._write_log_path: str = write_log

    # -- properties ---------------------------------------------------------

    @property
    def input_fd(self) -> int:
        return self._input_fd

    @property
    def output_fd(self) -> int:
        return self._output_fd

    # -- I/O ----------------------------------------------------------------

    def read(self, count: int = 1) -> bytes:
        """Read up to *count* bytes; ``b""`` means the read timed out."""
        try:
            return os.read(self._input_fd, count)
        except OSError as e:
            raise TerminalReadError(f"Unable to read from the terminal: {e}") from e

    def write(self, data: bytes) -> None:
        """Write *data* to the output device and optionally to the write log."""
        view = memoryview(data)
        while view:
            written = os.write(self._output_fd, view)
            view = view[written:]

        if self._write_log_path:
            try:
                with open(self._write_log_path, "ab") as f:
                    f.write(data)
            except OSError:
                logger.warning("Could not append to write log %s", self._write_log_path)

    def get_size(self) -> tuple[int, int]:
        """Ask the operating system for the window size as ``(rows, columns)``.

        Returns ``(0, 0)`` when the size cannot be reported, which callers
        treat as a request to fall back to the cursor-probing protocol.
        """
        try:
            size = os.get_terminal_size(self._output_fd)
        except (ValueError, OSError):
            return 0, 0
        return size.lines, size.columns


# ---------------------------------------------------------------------------
# Raw mode
# ---------------------------------------------------------------------------


def make_raw_attributes(attrs: list) -> list:
    """Return a raw-mode copy of a ``termios.tcgetattr`` attribute list.

    Input: no break signal, no CR to NL, no parity check, no strip char,
    no start/stop output control. Output: no post processing. Control:
    8 bit characters. Local: no echo, no canonical mode, no extended
    functions, no signal chars (^Z, ^C).
    """
    raw = list(attrs)
    raw[_IFLAG] &= ~(
        termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON
    )
    raw[_OFLAG] &= ~termios.OPOST
    raw[_CFLAG] |= termios.CS8
    raw[_LFLAG] &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)

    cc = list(raw[_CC])
    cc[termios.VMIN] = _READ_MIN_BYTES
    cc[termios.VTIME] = _READ_TIMEOUT_DECISECONDS
    raw[_CC] = cc
    return raw


class TerminalModeController:
    """Enter and leave raw mode on a terminal file descriptor.

    The attributes in effect before the first :meth:`enable` are captured
    once and kept for the lifetime of the controller. A process-exit hook
    restores them, so the terminal is sane again however the process ends.
    """

    def __init__(self, fd: int | None = None) -> None:
        self._fd = sys.stdin.fileno() if fd is None else fd
        self._original: list | None = None
        self._active: bool = False
        self._exit_hook_installed: bool = False

    @property
    def fd(self) -> int:
        return self._fd

    @property
    def active(self) -> bool:
        return self._active

    def enable(self) -> None:
        """Put the terminal into raw mode.

        Raises :class:`NotATerminalError` when the descriptor is not a tty
        and :class:`TerminalControlError` when the attributes cannot be read
        or written. Both are detected before the terminal is altered.
        """
        if self._active:
            return
        if not os.isatty(self._fd):
            raise NotATerminalError(f"File descriptor {self._fd} is not a terminal")

        try:
            current = termios.tcgetattr(self._fd)
        except termios.error as e:
            raise TerminalControlError(f"Unable to read terminal attributes: {e}") from e

        if self._original is None:
            self._original = current

        if not self._exit_hook_installed:
            atexit.register(self._restore_on_exit)
            self._exit_hook_installed = True

        try:
            termios.tcsetattr(self._fd, termios.TCSAFLUSH, make_raw_attributes(self._original))
        except termios.error as e:
            raise TerminalControlError(f"Unable to set terminal attributes: {e}") from e

        self._active = True
        logger.info("Raw mode enabled on fd %d", self._fd)

    def disable(self) -> None:
        """Restore the captured attributes. Safe to call any number of times."""
        if not self._active or self._original is None:
            return
        try:
            termios.tcsetattr(self._fd, termios.TCSAFLUSH, self._original)
        except termios.error as e:
            raise TerminalControlError(f"Unable to restore terminal attributes: {e}") from e
        self._active = False
        logger.info("Raw mode disabled on fd %d", self._fd)

    def _restore_on_exit(self) -> None:
        try:
            self.disable()
        except TerminalControlError:
            logger.exception("Terminal left in raw mode at exit")

    # -- context manager ----------------------------------------------------

    def __enter__(self) -> TerminalModeController:
        self.enable()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.disable()
