"""Descriptor — an OS file descriptor with explicit ownership.

An owning ``Descriptor`` closes its fd exactly once; a reference created
with ``borrow()`` points at the same fd but never closes it.  Routes hold a
borrowed reference to the shared transcript and owning references to their
own pass-through endpoints.
"""

from __future__ import annotations

import logging
import os
import selectors
import stat
from enum import Enum

from proglog.core.syscalls import syscall

logger = logging.getLogger(__name__)


class DescriptorState(str, Enum):
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


class Descriptor:
    """A readable or writable stream endpoint.

    Parameters
    ----------
    fd:
        The OS file descriptor.
    name:
        Human-readable label used in diagnostics (``"transcript"``,
        ``"child-stdout"``...).
    owned:
        Whether this object is responsible for closing *fd*.
    labelled:
        As a destination, whether it receives timestamp-labelled records
        (``True``) or the raw bytes of each read.
    """

    def __init__(
        self, fd: int, name: str, *, owned: bool = True, labelled: bool = True
    ) -> None:
        self._fd = fd
        self._name = name
        self._owned = owned
        self._labelled = labelled
        self._state = DescriptorState.OPEN
        self._syncable: bool | None = None
        self._restore_blocking = False

    def __repr__(self) -> str:
        kind = "owned" if self._owned else "borrowed"
        return f"Descriptor({self._name!r}, fd={self._fd}, {kind}, {self._state.value})"

    def __enter__(self) -> Descriptor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def open_append(cls, path: os.PathLike | str, name: str, mode: int = 0o600) -> Descriptor:
        """Open *path* for append-only writing, creating it if absent."""
        with syscall("open"):
            fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, mode)
        return cls(fd, name)

    @classmethod
    def duplicate(cls, fd: int, name: str, *, labelled: bool = True) -> Descriptor:
        """Own a ``dup()`` of *fd*; closing it leaves *fd* itself open."""
        with syscall("dup"):
            new_fd = os.dup(fd)
        return cls(new_fd, name, labelled=labelled)

    def borrow(self) -> Descriptor:
        """Return a non-owning reference to the same fd."""
        return Descriptor(self._fd, self._name, owned=False, labelled=self._labelled)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def fd(self) -> int:
        return self._fd

    @property
    def name(self) -> str:
        return self._name

    @property
    def owned(self) -> bool:
        return self._owned

    @property
    def labelled(self) -> bool:
        return self._labelled

    @property
    def state(self) -> DescriptorState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state is DescriptorState.CLOSED

    def fileno(self) -> int:
        return self._fd

    # ------------------------------------------------------------------
    # I/O
    # ------------------------------------------------------------------

    def set_nonblocking(self) -> None:
        """Switch to non-blocking reads; ``close`` restores the old mode."""
        with syscall("fcntl"):
            if os.get_blocking(self._fd):
                self._restore_blocking = True
                os.set_blocking(self._fd, False)

    def read(self, size: int) -> bytes | None:
        """Read up to *size* bytes.

        Returns ``None`` when the read would block and ``b""`` at
        end-of-stream.
        """
        with syscall("read"):
            try:
                return os.read(self._fd, size)
            except BlockingIOError:
                return None

    def write_all(self, data: bytes) -> None:
        """Write all of *data*, looping over short writes.

        A terminal shares its open file description between stdin and
        stdout, so a non-blocking stdin makes stdout non-blocking too; a
        full buffer waits for writability instead of failing.
        """
        view = memoryview(data)
        with syscall("write"):
            while view:
                try:
                    written = os.write(self._fd, view)
                except BlockingIOError:
                    self._wait_writable()
                    continue
                view = view[written:]

    def _wait_writable(self) -> None:
        with selectors.PollSelector() as selector:
            selector.register(self._fd, selectors.EVENT_WRITE)
            selector.select()

    def sync(self) -> None:
        """Force written data to stable storage.

        Only regular files are synced; pipes, sockets and terminals hold
        nothing that ``fsync`` could flush.
        """
        if self._syncable is None:
            with syscall("fstat"):
                self._syncable = stat.S_ISREG(os.fstat(self._fd).st_mode)
        if self._syncable:
            with syscall("fsync"):
                os.fsync(self._fd)

    def close(self) -> None:
        """Release the fd if owned.  Idempotent."""
        if self._state is not DescriptorState.OPEN:
            return
        self._state = DescriptorState.CLOSING
        if self._owned:
            with syscall("close"):
                if self._restore_blocking:
                    os.set_blocking(self._fd, True)
                os.close(self._fd)
            logger.debug("Closed descriptor %s (fd %d)", self._name, self._fd)
        self._state = DescriptorState.CLOSED
