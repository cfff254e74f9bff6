"""proglog CLI — Typer-based command-line interface.

Provides the ``proglog`` command, which runs a program under audit, and
``proglog-cat``, which renders a transcript with readable timestamps.

Diagnostics use Rich on stderr.
"""
