"""Record framing helpers shared by the tee sink and the session."""

from __future__ import annotations

from collections.abc import Sequence


def split_records(pending: bytes | bytearray, chunk: bytes) -> tuple[list[bytes], bytes]:
    """Split ``pending + chunk`` into newline-terminated records.

    Returns the complete records (each ending in ``b"\\n"``) and the
    trailing bytes that have no newline yet.

    Examples
    --------
    >>> split_records(b"", b"a\\nb\\npar")
    ([b'a\\n', b'b\\n'], b'par')
    >>> split_records(b"par", b"tial\\n")
    ([b'partial\\n'], b'')
    """
    data = bytes(pending) + chunk
    end = data.rfind(b"\n") + 1
    if end == 0:
        return [], data
    # Only b"\n" terminates a record; b"\r" is payload.
    records = [line + b"\n" for line in data[: end - 1].split(b"\n")]
    return records, data[end:]


def format_command(argv: Sequence[str]) -> bytes:
    """Render the synthetic record payload naming the child command.

    >>> format_command(["echo", "hi"])
    b'$ echo hi\\n'
    """
    parts = [b"$"] + [arg.encode("utf-8", "surrogateescape") for arg in argv]
    return b" ".join(parts) + b"\n"
