"""Tests for cline.dispatcher -- key routing, quit countdown and resizes."""

from __future__ import annotations

import signal

import pytest

from cline.dispatcher import DispatcherState, EventDispatcher, NullEditingHooks
from cline.editor_state import EditorState, Row
from cline.geometry import ScreenGeometryResolver
from cline.keys import Key, KeyDecoder
from cline.renderer import ScreenRenderer

from .virtual_terminal import VirtualTerminal

ESC = b"\x1b"


class RecordingHooks:
    """Editing hooks that remember every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def insert_character(self, key: int) -> None:
        self.calls.append(("insert_character", key))

    def delete_character(self) -> None:
        self.calls.append(("delete_character",))

    def insert_line(self) -> None:
        self.calls.append(("insert_line",))

    def move_cursor(self, direction: int) -> None:
        self.calls.append(("move_cursor", direction))


def make_dispatcher(
    rows: int = 24,
    columns: int = 80,
    quit_times: int = 3,
) -> tuple[EventDispatcher, VirtualTerminal, RecordingHooks]:
    term = VirtualTerminal(rows=rows, columns=columns)
    term.timeouts_left = 0
    state = EditorState()
    state.apply_geometry(rows, columns)
    hooks = RecordingHooks()
    dispatcher = EventDispatcher(
        state,
        KeyDecoder(term),
        ScreenRenderer(term),
        ScreenGeometryResolver(term),
        hooks=hooks,
        quit_times=quit_times,
    )
    return dispatcher, term, hooks


# ---------------------------------------------------------------------------
# Key routing
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_enter_inserts_line(self) -> None:
        dispatcher, _, hooks = make_dispatcher()
        dispatcher.dispatch(Key.ENTER)
        assert hooks.calls == [("insert_line",)]

    def test_backspace_and_delete(self) -> None:
        dispatcher, _, hooks = make_dispatcher()
        dispatcher.dispatch(Key.BACKSPACE)
        dispatcher.dispatch(Key.DEL)
        assert hooks.calls == [("delete_character",), ("delete_character",)]

    @pytest.mark.parametrize(
        "key", [Key.ARROW_UP, Key.ARROW_DOWN, Key.ARROW_LEFT, Key.ARROW_RIGHT]
    )
    def test_arrows_move_cursor(self, key: int) -> None:
        dispatcher, _, hooks = make_dispatcher()
        dispatcher.dispatch(key)
        assert hooks.calls == [("move_cursor", key)]

    def test_printable_inserts_character(self) -> None:
        dispatcher, _, hooks = make_dispatcher()
        dispatcher.dispatch(ord("a"))
        dispatcher.dispatch(Key.TAB)
        assert hooks.calls == [("insert_character", ord("a")), ("insert_character", Key.TAB)]

    def test_dispatch_never_touches_rows(self) -> None:
        dispatcher, _, _ = make_dispatcher()
        dispatcher.state.rows.append(Row.from_chars(b"keep"))
        for key in (Key.ENTER, Key.DEL, Key.ARROW_UP, ord("z")):
            dispatcher.dispatch(key)
        assert [r.chars for r in dispatcher.state.rows] == [b"keep"]

    def test_default_hooks(self) -> None:
        term = VirtualTerminal()
        dispatcher = EventDispatcher(
            EditorState(),
            KeyDecoder(term),
            ScreenRenderer(term),
            ScreenGeometryResolver(term),
        )
        assert isinstance(dispatcher._hooks, NullEditingHooks)
        dispatcher.dispatch(ord("x"))
        dispatcher.dispatch(Key.ARROW_LEFT)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------


class TestStep:
    def test_step_refreshes_then_reads(self) -> None:
        dispatcher, term, hooks = make_dispatcher()
        term.feed(b"q")
        dispatcher.step()
        assert term.write_count == 1
        assert hooks.calls == [("insert_character", ord("q"))]

    def test_decoded_sequences_reach_hooks(self) -> None:
        dispatcher, term, hooks = make_dispatcher()
        term.feed(b"\x1b[A", b"\x1b[3~", b"\r")
        for _ in range(3):
            dispatcher.step()
        assert hooks.calls == [
            ("move_cursor", Key.ARROW_UP),
            ("delete_character",),
            ("insert_line",),
        ]


class TestQuit:
    def test_three_escapes_quit(self) -> None:
        dispatcher, term, _ = make_dispatcher()
        term.feed(ESC, b"", ESC, b"", ESC, b"")
        dispatcher.run()
        assert dispatcher.status is DispatcherState.QUITTING

    def test_two_escapes_do_not_quit(self) -> None:
        dispatcher, term, _ = make_dispatcher()
        term.feed(ESC, b"", ESC, b"")
        dispatcher.step()
        dispatcher.step()
        assert dispatcher.status is DispatcherState.RUNNING
        assert dispatcher.quit_times == 1

    def test_countdown_message(self) -> None:
        dispatcher, _, _ = make_dispatcher()
        dispatcher.dispatch(Key.ESC)
        assert dispatcher.state.status_message == "Press ESC 2 more times to quit"
        dispatcher.dispatch(Key.ESC)
        assert dispatcher.state.status_message == "Press ESC 1 more time to quit"

    def test_other_key_clears_countdown_message(self) -> None:
        dispatcher, _, _ = make_dispatcher()
        dispatcher.dispatch(Key.ESC)
        for byte in b"hello world":
            dispatcher.dispatch(byte)
        assert dispatcher.state.status_message == ""
        assert dispatcher.quit_times == 2

    def test_clearing_keeps_unrelated_message(self) -> None:
        dispatcher, _, _ = make_dispatcher()
        dispatcher.dispatch(Key.ESC)
        dispatcher.state.status_message = "Saved"
        dispatcher.dispatch(ord("a"))
        assert dispatcher.state.status_message == "Saved"

    def test_other_keys_do_not_reset_countdown(self) -> None:
        dispatcher, term, hooks = make_dispatcher()
        term.feed(ESC, b"", b"a", ESC, b"", b"b", ESC, b"")
        dispatcher.run()
        assert dispatcher.status is DispatcherState.QUITTING
        assert hooks.calls == [("insert_character", ord("a")), ("insert_character", ord("b"))]

    def test_quit_times_one(self) -> None:
        dispatcher, _, _ = make_dispatcher(quit_times=1)
        dispatcher.dispatch(Key.ESC)
        assert dispatcher.status is DispatcherState.QUITTING

    def test_invalid_quit_times(self) -> None:
        with pytest.raises(ValueError):
            make_dispatcher(quit_times=0)


# ---------------------------------------------------------------------------
# Resize handling
# ---------------------------------------------------------------------------


class TestResize:
    def test_sigwinch_only_sets_flag(self) -> None:
        dispatcher, term, _ = make_dispatcher()
        dispatcher._on_sigwinch(signal.SIGWINCH, None)
        assert dispatcher.resize_pending
        assert term.write_count == 0
        assert dispatcher.state.screen_rows == 22

    def test_pending_resize_applied_before_refresh(self) -> None:
        dispatcher, term, _ = make_dispatcher()
        term.set_size(30, 100)
        dispatcher.request_resize()
        term.feed(b"x")
        dispatcher.step()
        assert not dispatcher.resize_pending
        assert dispatcher.state.screen_rows == 28
        assert dispatcher.state.screen_columns == 100
        # 28 viewport rows plus the status line
        assert term.output.count(b"\r\n") == 29

    def test_resize_clamps_cursor(self) -> None:
        dispatcher, term, _ = make_dispatcher()
        dispatcher.state.cursor_y = 20
        dispatcher.state.cursor_x = 70
        term.set_size(10, 40)
        dispatcher.request_resize()
        assert dispatcher.handle_pending_resize()
        assert dispatcher.state.cursor_y == 7
        assert dispatcher.state.cursor_x == 39

    def test_no_pending_resize(self) -> None:
        dispatcher, _, _ = make_dispatcher()
        assert not dispatcher.handle_pending_resize()

    def test_idle_redraws_after_resize(self) -> None:
        dispatcher, term, _ = make_dispatcher()
        term.set_size(12, 60)
        dispatcher.request_resize()
        dispatcher._on_idle()
        assert term.write_count == 1
        assert dispatcher.state.screen_rows == 10

    def test_idle_without_resize_does_nothing(self) -> None:
        dispatcher, term, _ = make_dispatcher()
        dispatcher._on_idle()
        assert term.write_count == 0

    def test_resize_while_waiting_for_key(self) -> None:
        dispatcher, term, _ = make_dispatcher()

        term.feed(b"", b"k")
        dispatcher._renderer.refresh(dispatcher.state)
        term.clear_output()
        term.set_size(20, 50)
        dispatcher.request_resize()
        key = dispatcher._decoder.read_key(on_idle=dispatcher._on_idle)
        assert key == ord("k")
        assert term.write_count == 1
        assert dispatcher.state.screen_columns == 50

    def test_install_and_uninstall_handler(self) -> None:
        dispatcher, _, _ = make_dispatcher()
        previous = signal.getsignal(signal.SIGWINCH)
        dispatcher.install_resize_handler()
        try:
            assert signal.getsignal(signal.SIGWINCH) == dispatcher._on_sigwinch
        finally:
            dispatcher.uninstall_resize_handler()
        assert signal.getsignal(signal.SIGWINCH) == previous
