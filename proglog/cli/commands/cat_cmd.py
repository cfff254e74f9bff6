"""``proglog-cat`` — print a transcript with decoded timestamps.

Each record is shown as ``<UTC time>  <payload>``; ``--raw`` keeps the
original 26-byte labels instead.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from proglog.core.transcript import TranscriptFormatError, read_transcript

console = Console(highlight=False)
err_console = Console(stderr=True, highlight=False)


def cat_cmd(
    transcript: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="Transcript file to read."
    ),
    raw: bool = typer.Option(False, "--raw", help="Show labels instead of times."),
) -> None:
    """Print every record of TRANSCRIPT."""
    try:
        records = read_transcript(transcript)
    except TranscriptFormatError as exc:
        err_console.print(f"[bold red]proglog-cat:[/bold red] {escape(str(exc))}")
        raise typer.Exit(code=1)

    for record in records:
        payload = escape(record.payload.decode("utf-8", "replace").rstrip("\n"))
        if raw:
            stamp = record.label.decode("ascii").rstrip()
        else:
            stamp = record.time.to_datetime().strftime("%Y-%m-%d %H:%M:%S.%f")
        if record.is_command:
            payload = f"[bold]{payload}[/bold]"
        console.print(f"[dim]{stamp}[/dim]  {payload}", soft_wrap=True)
