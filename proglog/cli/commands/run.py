"""``proglog`` — run a program with its standard streams recorded.

Everything from the first positional argument on is the child command,
including arguments that look like options.  The process exits with the
child's exit code, or 1 after a fatal error or a terminating signal.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from proglog.config import config
from proglog.core.session import Session
from proglog.core.syscalls import FatalSystemCallError
from proglog.core.watcher import ChildSignaled

err_console = Console(stderr=True, highlight=False)

EXIT_FAILURE = 1


def run_cmd(
    command: list[str] = typer.Argument(
        ...,
        metavar="COMMAND...",
        help="Program to run, followed by its arguments.",
        show_default=False,
    ),
    log: Path = typer.Option(
        None,
        "--log",
        metavar="PATH",
        help="Transcript file to append to (default: ./transcript).",
        show_default=False,
    ),
) -> None:
    """Run COMMAND, relaying its stdin/stdout/stderr and appending a
    timestamped copy of every line to the transcript."""
    session = Session(command, log or config.default_log_path)
    try:
        code = session.run()
    except ChildSignaled as exc:
        err_console.print(
            f"[bold red]proglog:[/bold red] {escape(command[0])}: "
            f"terminated by signal {exc.signum} ({exc.outcome.signal_name})"
        )
        raise typer.Exit(code=EXIT_FAILURE)
    except FatalSystemCallError as exc:
        err_console.print(f"[bold red]proglog:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=EXIT_FAILURE)
    raise typer.Exit(code=code)
