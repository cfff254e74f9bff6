"""Runtime configuration — env-driven.

Reads from a .env file and PROGLOG_* environment variables.  The command
line only carries the transcript path and the child command; everything
else about how a session behaves lives here.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class ProglogConfig(BaseSettings):
    """Session configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export PROGLOG_LOG_LEVEL=DEBUG
        export PROGLOG_DEFAULT_LOG_PATH=/var/log/session.transcript
        export PROGLOG_FINAL_DRAIN=until_eof

    Or via .env file::

        PROGLOG_READ_CHUNK_SIZE=65536
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PROGLOG_",
        env_file_encoding="utf-8",
    )

    # Transcript
    default_log_path: Path = Path("transcript")
    transcript_mode: int = 0o600

    # Diagnostics (stderr, never the transcript)
    log_level: str = "WARNING"

    # Relay
    # Pass-through endpoints (operator terminal, child stdin) get the raw
    # bytes unless this is set, in which case they receive labelled records
    # exactly like the transcript.
    label_passthrough: bool = False

    # Reactor
    read_chunk_size: int = 4096
    # A partial line this long is recorded with a synthesized newline.
    max_partial_line: int = 1_048_576
    # "single": one drain pass after the child is reaped.
    # "until_eof": keep draining child output until both pipes hit EOF.
    final_drain: Literal["single", "until_eof"] = "single"


# Module-level singleton: import as `from proglog.config import config`
config = ProglogConfig()
