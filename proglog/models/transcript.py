"""Transcript models — decoded labels and records read back from a transcript."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class LabelTime(BaseModel):
    """Wall-clock instant carried by a timestamp label."""

    model_config = ConfigDict(frozen=True)

    seconds: int  # since the Unix epoch
    nanoseconds: int = Field(ge=0, lt=1_000_000_000)

    def to_datetime(self) -> datetime:
        """Return the instant as an aware UTC datetime (microsecond precision)."""
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc).replace(
            microsecond=self.nanoseconds // 1000
        )


class TranscriptRecord(BaseModel):
    """A single ``<label><payload>`` record from a transcript file."""

    model_config = ConfigDict(frozen=True)

    label: bytes
    time: LabelTime
    payload: bytes  # includes the trailing newline

    @property
    def is_command(self) -> bool:
        """True for the synthetic ``$ argv...`` record opening a session."""
        return self.payload.startswith(b"$ ")
