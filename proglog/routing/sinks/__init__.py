"""Sink protocol for proglog routing.

All sinks implement the ``BaseSink`` protocol: a ``sink_name`` property
and a ``deliver(route, buffer, length)`` method.  The watcher calls
``deliver`` once per successful read on a route's source.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from proglog.routing.route import Route


@runtime_checkable
class BaseSink(Protocol):
    """Protocol that every proglog sink must implement.

    Attributes
    ----------
    sink_name : str
        A unique human-readable identifier for this sink instance.
    """

    @property
    def sink_name(self) -> str:
        """Return the unique name of this sink."""
        ...

    def deliver(self, route: Route, buffer: bytes, length: int | None = None) -> None:
        """Deliver ``buffer[:length]`` to every destination of *route*.

        Failures must propagate: the session cannot continue with a
        transcript that silently missed bytes.
        """
        ...

    def flush_partial(self, route: Route) -> None:
        """Emit any bytes still held for *route* once its source is exhausted."""
        ...
