"""External TAI64N-style timestamp labels.

A label is ``@`` + 24 lowercase hex digits + a space: 26 bytes.  The hex
digits encode 12 packed bytes — 8 big-endian bytes of
``seconds + TAI64_EPOCH_SHIFT`` followed by 4 big-endian bytes of
nanoseconds.  Fixed width plus big-endian packing means labels sort
byte-wise in wall-clock order.
"""

from __future__ import annotations

import re
import time
from collections.abc import Callable

from proglog.core.syscalls import syscall
from proglog.models.transcript import LabelTime

LABEL_SIZE = 26
TAI64_EPOCH_SHIFT = 4611686018427387914  # 2**62 + 10

_LABEL_RE = re.compile(rb"@([0-9a-f]{24}) ")


def encode_label(seconds: int, nanoseconds: int) -> bytes:
    """Encode a wall-clock sample as a 26-byte label.

    Examples
    --------
    >>> encode_label(0, 0)
    b'@400000000000000a00000000 '
    """
    packed = (TAI64_EPOCH_SHIFT + seconds).to_bytes(8, "big") + nanoseconds.to_bytes(
        4, "big"
    )
    return b"@" + packed.hex().encode("ascii") + b" "


def now_label(clock: Callable[[], int] = time.time_ns) -> bytes:
    """Sample *clock* (nanoseconds since the epoch) once and encode it."""
    with syscall("clock_gettime"):
        stamp = clock()
    seconds, nanoseconds = divmod(stamp, 1_000_000_000)
    return encode_label(seconds, nanoseconds)


def decode_label(label: bytes) -> LabelTime:
    """Invert ``encode_label``.

    Raises
    ------
    ValueError
        If *label* is not a well-formed 26-byte label.
    """
    match = _LABEL_RE.fullmatch(label)
    if match is None:
        raise ValueError(f"not a timestamp label: {label!r}")
    packed = bytes.fromhex(match.group(1).decode("ascii"))
    return LabelTime(
        seconds=int.from_bytes(packed[:8], "big") - TAI64_EPOCH_SHIFT,
        nanoseconds=int.from_bytes(packed[8:], "big"),
    )
