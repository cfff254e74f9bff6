"""Session models — watcher state machine and child outcome."""

from __future__ import annotations

import signal
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


class StreamName(str, Enum):
    """The three standard stream directions a session relays."""

    INPUT = "input"  # operator stdin -> child stdin
    OUTPUT = "output"  # child stdout -> operator stdout
    ERROR = "error"  # child stderr -> operator stderr


class WatcherState(str, Enum):
    """Lifecycle of the multiplexer loop."""

    RUNNING = "running"
    CHILD_DEAD_DRAINING = "child_dead_draining"
    TERMINATED = "terminated"


# Valid state transitions, enforced by FdMultiplexer.
# TERMINATED has no outgoing transitions.
VALID_TRANSITIONS: dict[WatcherState, set[WatcherState]] = {
    WatcherState.RUNNING: {WatcherState.CHILD_DEAD_DRAINING},
    WatcherState.CHILD_DEAD_DRAINING: {WatcherState.TERMINATED},
    WatcherState.TERMINATED: set(),  # terminal
}


class ChildOutcome(BaseModel):
    """How the child process terminated.

    Exactly one of ``exit_code`` and ``signum`` is set.
    """

    model_config = ConfigDict(frozen=True)

    pid: int
    exit_code: int | None = None
    signum: int | None = None

    @model_validator(mode="after")
    def _exactly_one(self) -> ChildOutcome:
        if (self.exit_code is None) == (self.signum is None):
            raise ValueError("ChildOutcome needs exactly one of exit_code or signum")
        return self

    @classmethod
    def from_returncode(cls, pid: int, returncode: int) -> ChildOutcome:
        """Build from a ``subprocess`` returncode (negative means signaled)."""
        if returncode < 0:
            return cls(pid=pid, signum=-returncode)
        return cls(pid=pid, exit_code=returncode)

    @property
    def signaled(self) -> bool:
        return self.signum is not None

    @property
    def signal_name(self) -> str:
        if self.signum is None:
            return ""
        try:
            return signal.Signals(self.signum).name
        except ValueError:
            return f"signal {self.signum}"
