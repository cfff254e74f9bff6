"""Launcher — pipe creation and child start-up.

``create_pipes`` makes one pipe per standard stream.  ``launch`` starts the
command with the child ends on its fds 0, 1 and 2, then closes the
parent's copies of those ends so the child's exit produces end-of-stream
on stdout and stderr.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict

from proglog.core.child import ChildProcess
from proglog.core.syscalls import FatalSystemCallError, syscall

logger = logging.getLogger(__name__)


class PipePair(BaseModel):
    """Read and write ends of one OS pipe."""

    model_config = ConfigDict(frozen=True)

    read: int
    write: int


class StandardPipes(BaseModel):
    """The three pipes connecting a session to its child.

    ``stdin.read``, ``stdout.write`` and ``stderr.write`` are the child
    ends; the other three stay with the watcher.
    """

    model_config = ConfigDict(frozen=True)

    stdin: PipePair
    stdout: PipePair
    stderr: PipePair

    @property
    def child_ends(self) -> tuple[int, int, int]:
        return (self.stdin.read, self.stdout.write, self.stderr.write)

    @property
    def parent_ends(self) -> tuple[int, int, int]:
        return (self.stdin.write, self.stdout.read, self.stderr.read)


def create_pipes() -> StandardPipes:
    """Create the stdin, stdout and stderr pipes."""
    pairs = []
    with syscall("pipe"):
        for _ in range(3):
            read_fd, write_fd = os.pipe()
            pairs.append(PipePair(read=read_fd, write=write_fd))
    return StandardPipes(stdin=pairs[0], stdout=pairs[1], stderr=pairs[2])


def launch(argv: Sequence[str], pipes: StandardPipes) -> ChildProcess:
    """Start *argv* wired to *pipes* and return its handle.

    Raises
    ------
    FatalSystemCallError
        ``execvp`` if the command cannot be started, ``close`` if the
        parent's copies of the child ends cannot be released.
    """
    if not argv:
        raise ValueError("launch() needs a command")
    try:
        popen = subprocess.Popen(
            list(argv),
            stdin=pipes.stdin.read,
            stdout=pipes.stdout.write,
            stderr=pipes.stderr.write,
            close_fds=True,
        )
    except OSError as exc:
        raise FatalSystemCallError("execvp", f"{argv[0]}: {exc.strerror or exc}") from exc
    finally:
        release_child_ends(pipes)

    logger.debug("Launched %s as pid %d", argv[0], popen.pid)
    return ChildProcess(popen)


def release_child_ends(pipes: StandardPipes) -> None:
    """Close the parent's copies of the child-side pipe ends."""
    with syscall("close"):
        for fd in pipes.child_ends:
            os.close(fd)
