"""Typer applications — ``proglog`` and ``proglog-cat``.

Entry points (configured via pyproject.toml console_scripts):
- ``proglog = proglog.cli.app:main``
- ``proglog-cat = proglog.cli.app:cat_main``
"""

from __future__ import annotations

import logging

import typer
from rich.console import Console
from rich.logging import RichHandler

from proglog.cli.commands.cat_cmd import cat_cmd
from proglog.cli.commands.run import run_cmd
from proglog.config import config

app = typer.Typer(
    name="proglog",
    help="proglog: run a program and keep a timestamped transcript of its I/O.",
    rich_markup_mode="rich",
    add_completion=False,
)

# The child command line must reach the child untouched: stop option
# parsing at the first positional and pass unknown options through.
app.command(
    name="run",
    context_settings={
        "allow_interspersed_args": False,
        "ignore_unknown_options": True,
    },
)(run_cmd)

cat_app = typer.Typer(
    name="proglog-cat",
    help="Print a proglog transcript with readable timestamps.",
    rich_markup_mode="rich",
    add_completion=False,
)
cat_app.command(name="cat")(cat_cmd)


def configure_logging(level: str | None = None) -> None:
    """Send diagnostics to stderr through Rich at the configured level."""
    logging.basicConfig(
        level=(level or config.log_level).upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def main() -> None:
    """CLI entry point."""
    configure_logging()
    app()


def cat_main() -> None:
    """Transcript viewer entry point."""
    configure_logging()
    cat_app()


if __name__ == "__main__":
    main()
