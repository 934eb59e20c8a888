"""Main loop: refresh the screen, read one key, dispatch it.

Editing itself lives outside this package. The dispatcher routes keys to an
:class:`EditingHooks` implementation and only handles quitting and
terminal resizes on its own.
"""

from __future__ import annotations

import enum
import logging
import signal
from typing import Any, Protocol

from cline.editor_state import EditorState
from cline.geometry import ScreenGeometryResolver
from cline.keys import ARROW_KEYS, Key, KeyDecoder, KeyEvent, key_name
from cline.renderer import ScreenRenderer

logger = logging.getLogger(__name__)

DEFAULT_QUIT_TIMES = 3


# ---------------------------------------------------------------------------
# Editing hooks
# ---------------------------------------------------------------------------


class EditingHooks(Protocol):
    """Document operations the dispatcher forwards keys to."""

    def insert_character(self, key: KeyEvent) -> None: ...

    def delete_character(self) -> None: ...

    def insert_line(self) -> None: ...

    def move_cursor(self, direction: KeyEvent) -> None: ...


class NullEditingHooks:
    """Hooks that leave the document untouched and only log the request."""

    def insert_character(self, key: KeyEvent) -> None:
        logger.debug("insert_character(%s)", key_name(key))

    def delete_character(self) -> None:
        logger.debug("delete_character()")

    def insert_line(self) -> None:
        logger.debug("insert_line()")

    def move_cursor(self, direction: KeyEvent) -> None:
        logger.debug("move_cursor(%s)", key_name(direction))


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------


class DispatcherState(enum.Enum):
    RUNNING = "running"
    QUITTING = "quitting"


class EventDispatcher:
    """Drive one editing session until the user quits.

    Pressing ESC ``quit_times`` times quits. The countdown is armed once per
    dispatcher and other keys do not reset it, but the next non-ESC key
    clears the countdown prompt from the message bar.
    """

    def __init__(
        self,
        state: EditorState,
        decoder: KeyDecoder,
        renderer: ScreenRenderer,
        resolver: ScreenGeometryResolver,
        hooks: EditingHooks | None = None,
        quit_times: int = DEFAULT_QUIT_TIMES,
    ) -> None:
        if quit_times < 1:
            raise ValueError(f"quit_times must be at least 1, got {quit_times}")
        self.state = state
        self._decoder = decoder
        self._renderer = renderer
        self._resolver = resolver
        self._hooks: EditingHooks = hooks if hooks is not None else NullEditingHooks()
        self._quit_times = quit_times
        self._status = DispatcherState.RUNNING
        self._quit_prompt = ""
        self._resize_pending = False
        self._prev_sigwinch_handler: Any = None
        self._sigwinch_installed = False

    @property
    def status(self) -> DispatcherState:
        return self._status

    @property
    def quit_times(self) -> int:
        return self._quit_times

    # -- main loop ----------------------------------------------------------

    def run(self) -> None:
        """Loop until the quit sequence has been typed."""
        while self._status is DispatcherState.RUNNING:
            self.step()

    def step(self) -> None:
        """One cycle: apply a pending resize, refresh, read and dispatch a key."""
        self.handle_pending_resize()
        self._renderer.refresh(self.state)
        key = self._decoder.read_key(on_idle=self._on_idle)
        self.dispatch(key)

    def dispatch(self, key: KeyEvent) -> None:
        if key != Key.ESC:
            self._clear_quit_prompt()

        if key == Key.ENTER:
            self._hooks.insert_line()
        elif key == Key.BACKSPACE or key == Key.DEL:
            self._hooks.delete_character()
        elif key in ARROW_KEYS:
            self._hooks.move_cursor(key)
        elif key == Key.ESC:
            self._on_escape()
        else:
            self._hooks.insert_character(key)

    def _on_escape(self) -> None:
        if self._quit_times > 1:
            self._quit_times -= 1
            remaining = self._quit_times
            plural = "time" if remaining == 1 else "times"
            self._quit_prompt = f"Press ESC {remaining} more {plural} to quit"
            self.state.status_message = self._quit_prompt
            logger.debug("Quit countdown at %d", remaining)
            return
        logger.info("Quit requested")
        self._status = DispatcherState.QUITTING

    def _clear_quit_prompt(self) -> None:
        # Leave messages set by anything else alone
        if self._quit_prompt and self.state.status_message == self._quit_prompt:
            self.state.status_message = ""
        self._quit_prompt = ""

    # -- resize handling ----------------------------------------------------

    def install_resize_handler(self) -> None:
        """Install a SIGWINCH handler that schedules a resize."""
        if self._sigwinch_installed:
            return
        self._prev_sigwinch_handler = signal.getsignal(signal.SIGWINCH)
        signal.signal(signal.SIGWINCH, self._on_sigwinch)
        self._sigwinch_installed = True

    def uninstall_resize_handler(self) -> None:
        if not self._sigwinch_installed:
            return
        signal.signal(signal.SIGWINCH, self._prev_sigwinch_handler)
        self._prev_sigwinch_handler = None
        self._sigwinch_installed = False

    def _on_sigwinch(self, signum: int, frame: object) -> None:
        """SIGWINCH: set flag, don't resize mid-render."""
        self._resize_pending = True

    def request_resize(self) -> None:
        self._resize_pending = True

    @property
    def resize_pending(self) -> bool:
        return self._resize_pending

    def handle_pending_resize(self) -> bool:
        """Re-resolve the geometry if a resize is pending.

        Returns ``True`` when the geometry was updated.
        """
        if not self._resize_pending:
            return False
        self._resize_pending = False
        rows, columns = self._resolver.resolve()
        self.state.apply_geometry(rows, columns)
        logger.info(
            "Resized to %dx%d (viewport %d rows)",
            rows,
            columns,
            self.state.screen_rows,
        )
        return True

    def _on_idle(self) -> None:
        # No key yet; redraw right away if the window changed meanwhile
        if self.handle_pending_resize():
            self._renderer.refresh(self.state)
