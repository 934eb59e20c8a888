"""CLI entry point for cline. Uses Click for argument parsing."""

from __future__ import annotations

import logging
import sys

import click

from cline import __version__
from cline.config import LOG_LEVELS, Config
from cline.dispatcher import DEFAULT_QUIT_TIMES, EditingHooks, EventDispatcher
from cline.editor_state import EditorState
from cline.errors import ClineError, GeometryQueryError, TerminalControlError
from cline.geometry import ScreenGeometryResolver
from cline.keys import KeyDecoder
from cline.renderer import ScreenRenderer
from cline.terminal import ProcessTerminal, Terminal, TerminalModeController

logger = logging.getLogger(__name__)


def configure_logging(config: Config) -> None:
    """Send log records to the configured file, never to the terminal."""
    if config.log_file:
        logging.basicConfig(
            filename=config.log_file,
            level=getattr(logging, config.log_level.upper()),
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        )
    else:
        logging.getLogger("cline").addHandler(logging.NullHandler())


def run_editor(
    config: Config,
    terminal: Terminal | None = None,
    controller: TerminalModeController | None = None,
    hooks: EditingHooks | None = None,
) -> EditorState:
    """Run an editing session until the user quits.

    The terminal is restored before this returns or raises. If restoring
    fails while another error is propagating, that error is the one raised.
    """
    if terminal is None:
        terminal = ProcessTerminal(write_log=config.write_log or "")
    if controller is None:
        controller = TerminalModeController(terminal.input_fd)

    state = EditorState()
    controller.enable()
    state.terminal_raw_mode = True
    try:
        resolver = ScreenGeometryResolver(terminal)
        rows, columns = resolver.resolve()
        state.apply_geometry(rows, columns)

        dispatcher = EventDispatcher(
            state,
            KeyDecoder(terminal),
            ScreenRenderer(terminal),
            resolver,
            hooks=hooks,
            quit_times=config.quit_times,
        )
        dispatcher.install_resize_handler()
        try:
            dispatcher.run()
        finally:
            dispatcher.uninstall_resize_handler()
    except BaseException:
        try:
            controller.disable()
        except TerminalControlError:
            # Report the session error; the exit hook retries the restore
            logger.exception("Unable to restore the terminal")
        state.terminal_raw_mode = controller.active
        raise

    try:
        controller.disable()
    finally:
        state.terminal_raw_mode = controller.active
    return state


def _describe(error: Exception) -> str:
    if isinstance(error, GeometryQueryError):
        return f"Unable to query the screen size (rows/columns): {error}"
    return str(error)


@click.command()
@click.option("--log-file", default=None, help="Write log records to this file")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS),
    default=None,
    help="Log level (default: warning)",
)
@click.option(
    "--quit-times",
    type=click.IntRange(min=1),
    default=None,
    help=f"Number of ESC presses needed to quit (default: {DEFAULT_QUIT_TIMES})",
)
@click.version_option(__version__, prog_name="cline")
def main(log_file, log_level, quit_times):
    """Common Lisp mINimal Editor."""
    try:
        config = Config.from_env()
    except ValueError as e:
        raise click.UsageError(str(e))

    if log_file is not None:
        config.log_file = log_file
    if log_level is not None:
        config.log_level = log_level
    if quit_times is not None:
        config.quit_times = quit_times

    configure_logging(config)

    try:
        run_editor(config)
    except (ClineError, OSError) as e:
        logger.error("Exiting: %s", e)
        click.echo(f"cline: {_describe(e)}", err=True)
        sys.exit(1)
