"""proglog: run a program and keep an auditable transcript of its I/O.

The child's stdin, stdout and stderr are relayed unchanged while every
line crossing them is appended to a single transcript file, each prefixed
with a 26-byte TAI64N-style timestamp label:
  - one single-threaded reactor (selectors) multiplexing three routes
  - a shared, append-only transcript synced after every record
  - partial lines held until their newline arrives
  - exit status propagated from the child
"""

__version__ = "0.1.0"
__author__ = "proglog contributors"
__description__ = "Process I/O auditor: relay a child's streams and tee them into a timestamped transcript"

from proglog.core.session import Session
from proglog.core.timestamp import decode_label, encode_label
from proglog.core.watcher import ChildSignaled, FdMultiplexer

__all__ = [
    "Session",
    "FdMultiplexer",
    "ChildSignaled",
    "encode_label",
    "decode_label",
    "__version__",
]
