"""cline: terminal-control core of the Common Lisp mINimal Editor."""

__version__ = "0.0.1"

# Editor state
from cline.editor_state import EditorState, Row, expand_tabs

# Error taxonomy
from cline.errors import (
    AllocationError,
    ClineError,
    GeometryQueryError,
    NotATerminalError,
    TerminalControlError,
    TerminalReadError,
)

# Terminal interface and raw mode
from cline.terminal import (
    ProcessTerminal,
    Terminal,
    TerminalModeController,
    make_raw_attributes,
)

# Keyboard input decoding
from cline.keys import (
    DecoderState,
    Key,
    KeyDecoder,
    KeyEvent,
    SawDigit,
    decode_step,
    key_name,
)

# Output batching and rendering
from cline.render_buffer import RenderBuffer
from cline.renderer import ScreenRenderer

# Terminal size detection
from cline.geometry import ScreenGeometryResolver, parse_cursor_position

# Main loop
from cline.dispatcher import (
    DispatcherState,
    EditingHooks,
    EventDispatcher,
    NullEditingHooks,
)

__all__ = [
    "__version__",
    # Editor state
    "EditorState",
    "Row",
    "expand_tabs",
    # Errors
    "AllocationError",
    "ClineError",
    "GeometryQueryError",
    "NotATerminalError",
    "TerminalControlError",
    "TerminalReadError",
    # Terminal
    "ProcessTerminal",
    "Terminal",
    "TerminalModeController",
    "make_raw_attributes",
    # Keys
    "DecoderState",
    "Key",
    "KeyDecoder",
    "KeyEvent",
    "SawDigit",
    "decode_step",
    "key_name",
    # Rendering
    "RenderBuffer",
    "ScreenRenderer",
    # Geometry
    "ScreenGeometryResolver",
    "parse_cursor_position",
    # Main loop
    "DispatcherState",
    "EditingHooks",
    "EventDispatcher",
    "NullEditingHooks",
]
