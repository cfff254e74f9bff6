"""proglog data models — all Pydantic v2, all frozen (immutable)."""

from proglog.models.session import (
    VALID_TRANSITIONS,
    ChildOutcome,
    StreamName,
    WatcherState,
)
from proglog.models.transcript import LabelTime, TranscriptRecord

__all__ = [
    # session
    "ChildOutcome",
    "StreamName",
    "WatcherState",
    "VALID_TRANSITIONS",
    # transcript
    "LabelTime",
    "TranscriptRecord",
]
