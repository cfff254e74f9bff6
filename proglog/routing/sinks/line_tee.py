"""LineTeeSink — timestamped, line-framed fan-out to a route's destinations.

Each ``deliver`` call corresponds to one read from the route's source:
- one label is sampled for the whole call;
- the read is split into newline-terminated records, with any trailing
  partial line held on the route until a later read completes it;
- every record goes to every labelled destination in route order as label
  then record, and the destination is synced before the next one is
  written.

Unlabelled destinations (operator terminal, child stdin) receive the read
verbatim and immediately, after the labelled ones, so relayed traffic is
never held back waiting for a newline.

The session marks the operator terminal and the child's stdin unlabelled
unless ``PROGLOG_LABEL_PASSTHROUGH`` is set.  This differs from the
classic behaviour, where every destination, pass-through ones included,
receives label plus record; setting the option restores it.

A held partial line that reaches ``max_partial`` bytes is emitted as a
record with a synthesized newline, so output without newlines is not
buffered without bound.

Any write or sync failure propagates as ``FatalSystemCallError``.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from proglog.core.timestamp import now_label
from proglog.routing.route import Route
from proglog.routing.sinks._formatting import split_records

logger = logging.getLogger(__name__)

DEFAULT_MAX_PARTIAL = 1 << 20


class LineTeeSink:
    """Writes labelled records to every destination of a route.

    Parameters
    ----------
    clock:
        Nanosecond wall clock.  Defaults to ``time.time_ns``.
    max_partial:
        Largest partial line held on a route before it is forced out.
    """

    def __init__(
        self,
        clock: Callable[[], int] = time.time_ns,
        max_partial: int = DEFAULT_MAX_PARTIAL,
    ) -> None:
        if max_partial < 1:
            raise ValueError("max_partial must be positive")
        self._clock = clock
        self._max_partial = max_partial

    @property
    def sink_name(self) -> str:
        return "line_tee"

    def deliver(self, route: Route, buffer: bytes, length: int | None = None) -> None:
        """Split ``buffer[:length]`` into records and fan them out."""
        chunk = bytes(buffer if length is None else buffer[:length])
        records, rest = split_records(route.partial, chunk)
        if len(rest) >= self._max_partial:
            logger.debug(
                "%s: forcing out %d bytes without a newline", route.name.value, len(rest)
            )
            records.append(rest + b"\n")
            rest = b""
        route.partial[:] = rest

        if records:
            self._write_records(route, now_label(self._clock), records)
        elif rest:
            logger.debug(
                "%s: holding %d bytes of partial line", route.name.value, len(rest)
            )

        for dest in route.destinations:
            if not dest.labelled:
                dest.write_all(chunk)
                dest.sync()

    def flush_partial(self, route: Route) -> None:
        """Emit a held partial line, newline-terminated, at end-of-stream.

        Unlabelled destinations already received these bytes verbatim.
        """
        if not route.partial:
            return
        record = bytes(route.partial) + b"\n"
        route.partial.clear()
        logger.debug(
            "%s: flushing %d bytes of unterminated output at EOF",
            route.name.value,
            len(record) - 1,
        )
        self._write_records(route, now_label(self._clock), [record])

    def _write_records(self, route: Route, label: bytes, records: list[bytes]) -> None:
        for record in records:
            for dest in route.destinations:
                if not dest.labelled:
                    continue
                dest.write_all(label)
                dest.write_all(record)
                dest.sync()
