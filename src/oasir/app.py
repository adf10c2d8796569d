"""Typer application and CLI entry point for oasir.

The CLI is a thin layer over the library: it loads documents from disk,
pre-registers auxiliary documents given with ``--register URI=PATH``, runs
assembly or validation, and renders the result through
:mod:`oasir.output`.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. Library errors (:class:`~oasir.exceptions.OasirError`)
exit with their ``exit_code``; anything else is reported as an unexpected
failure.

See Also:
    :mod:`oasir.config`: Engine configuration resolution.
    :mod:`oasir.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler

from oasir import __version__
from oasir.exit_codes import EXIT_GENERIC_FAILURE

app = typer.Typer(
    name="oasir",
    help="Inspect and validate OpenAPI documents through a resolved intermediate representation.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"oasir {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, no_color: bool) -> None:
    """Route library logging to stderr through Rich when ``--verbose`` is set."""
    root = logging.getLogger("oasir")
    for handler in list(root.handlers):
        if getattr(handler, "_oasir_cli", False):
            root.removeHandler(handler)
    if not verbose:
        root.setLevel(logging.WARNING)
        return
    handler = RichHandler(
        console=Console(file=sys.stderr, no_color=no_color, stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler._oasir_cli = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(logging.DEBUG)


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~oasir.output.OutputManager` and the
    logging handler.
    """
    from oasir.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet))
    _configure_logging(verbose, no_color)


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #

from oasir.commands.inspect import inspect_app  # noqa: E402
from oasir.commands.validate import validate_command  # noqa: E402

app.add_typer(inspect_app, name="inspect", help="Inspect routes, models and metadata.")
app.command("validate")(validate_command)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``oasir`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from oasir.exceptions import OasirError
        from oasir.output import error

        if isinstance(exc, OasirError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
