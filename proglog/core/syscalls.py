"""Fatal wrapper for low-level OS primitives.

Every descriptor, process and clock operation runs inside ``syscall(name)``.
An ``OSError`` escaping the block becomes a ``FatalSystemCallError`` naming
the primitive.  Nothing is retried.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager


class FatalSystemCallError(RuntimeError):
    """Raised when an OS primitive fails unexpectedly.

    It must not be caught and ignored — the session should exit.
    """

    def __init__(self, primitive: str, detail: str = "") -> None:
        self.primitive = primitive
        self.detail = detail
        super().__init__(f"{primitive}: {detail}" if detail else primitive)


@contextmanager
def syscall(primitive: str) -> Iterator[None]:
    """Translate ``OSError`` raised in the block into ``FatalSystemCallError``."""
    try:
        yield
    except OSError as exc:
        raise FatalSystemCallError(primitive, exc.strerror or str(exc)) from exc
