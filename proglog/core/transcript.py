"""Transcript reader — parses ``<label><payload>`` records back out of a file.

The format is a plain concatenation of records; each is a 26-byte label
followed by payload bytes up to and including the next newline.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from proglog.core.timestamp import LABEL_SIZE, decode_label
from proglog.models.transcript import TranscriptRecord


class TranscriptFormatError(ValueError):
    """Raised when a transcript does not parse as a sequence of records."""


def parse_records(data: bytes) -> Iterator[TranscriptRecord]:
    """Yield every record in *data*, in file order."""
    offset = 0
    while offset < len(data):
        label = data[offset : offset + LABEL_SIZE]
        try:
            label_time = decode_label(label)
        except ValueError as exc:
            raise TranscriptFormatError(f"bad label at byte {offset}") from exc
        start = offset + LABEL_SIZE
        end = data.find(b"\n", start)
        if end < 0:
            raise TranscriptFormatError(f"unterminated record at byte {offset}")
        yield TranscriptRecord(label=label, time=label_time, payload=data[start : end + 1])
        offset = end + 1


def read_transcript(path: Path | str) -> list[TranscriptRecord]:
    """Read and parse a whole transcript file."""
    return list(parse_records(Path(path).read_bytes()))
