"""ChildProcess — the spawned command and its exit notification channel.

The watcher learns about the child's death through a descriptor it can put
in the same readiness wait as the relayed streams:

- on Linux, a ``pidfd`` that becomes readable when the child exits;
- elsewhere, a self-pipe fed by ``signal.set_wakeup_fd`` from a
  ``SIGCHLD`` handler.

Either way the wait stays blocked (no polling timeout) until a stream has
data or the child changes state.  The actual status is always read with a
non-blocking poll.
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess

from proglog.core.syscalls import syscall
from proglog.models.session import ChildOutcome

logger = logging.getLogger(__name__)


class ChildProcess:
    """A running child plus its exit notification descriptor.

    Parameters
    ----------
    popen:
        The started process.
    """

    def __init__(self, popen: subprocess.Popen) -> None:
        self._popen = popen
        self._outcome: ChildOutcome | None = None
        self._pidfd: int | None = None
        self._wakeup: tuple[int, int] | None = None
        self._saved_handler: object = None
        self._saved_wakeup_fd = -1
        self._open_watch()

    def __repr__(self) -> str:
        return f"ChildProcess(pid={self.pid}, args={self._popen.args!r})"

    @property
    def pid(self) -> int:
        return self._popen.pid

    @property
    def outcome(self) -> ChildOutcome | None:
        return self._outcome

    # ------------------------------------------------------------------
    # Exit notification
    # ------------------------------------------------------------------

    def _open_watch(self) -> None:
        if hasattr(os, "pidfd_open"):
            try:
                self._pidfd = os.pidfd_open(self.pid)
                logger.debug("Watching child %d via pidfd %d", self.pid, self._pidfd)
                return
            except OSError as exc:
                logger.debug("pidfd_open unavailable (%s), using SIGCHLD", exc)

        with syscall("pipe"):
            read_fd, write_fd = os.pipe()
            os.set_blocking(read_fd, False)
            os.set_blocking(write_fd, False)
        self._wakeup = (read_fd, write_fd)
        self._saved_handler = signal.signal(signal.SIGCHLD, _on_sigchld)
        self._saved_wakeup_fd = signal.set_wakeup_fd(write_fd, warn_on_full_buffer=False)
        # The child may have exited before the handler existed; make sure
        # the first wait returns so its status gets polled.
        with syscall("write"):
            os.write(write_fd, b"\0")
        logger.debug("Watching child %d via SIGCHLD wakeup fd %d", self.pid, read_fd)

    def fileno(self) -> int:
        """Descriptor that becomes readable when the child changes state."""
        if self._pidfd is not None:
            return self._pidfd
        if self._wakeup is None:
            raise ValueError("child watch is closed")
        return self._wakeup[0]

    def acknowledge(self) -> None:
        """Consume pending wakeup bytes so the next wait can block again."""
        if self._wakeup is None:
            return
        with syscall("read"):
            while True:
                try:
                    if not os.read(self._wakeup[0], 512):
                        break
                except BlockingIOError:
                    break

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def poll(self) -> ChildOutcome | None:
        """Return the child's outcome if it has terminated, else ``None``."""
        if self._outcome is not None:
            return self._outcome
        with syscall("waitpid"):
            returncode = self._popen.poll()
        if returncode is None:
            return None
        self._outcome = ChildOutcome.from_returncode(self.pid, returncode)
        logger.debug("Child %d terminated: %r", self.pid, self._outcome)
        return self._outcome

    def close(self) -> None:
        """Release the notification channel and restore signal state."""
        if self._pidfd is not None:
            with syscall("close"):
                os.close(self._pidfd)
            self._pidfd = None
        if self._wakeup is not None:
            signal.set_wakeup_fd(self._saved_wakeup_fd)
            signal.signal(signal.SIGCHLD, self._saved_handler)
            with syscall("close"):
                for fd in self._wakeup:
                    os.close(fd)
            self._wakeup = None


def _on_sigchld(signum: int, frame: object) -> None:
    # The wakeup fd does the work; the handler only has to exist.
    pass
