"""Route and RouteTable — source-to-destinations bookkeeping.

Ownership model:
- The transcript ``Descriptor`` is owned by the ``RouteTable`` (the session).
- Each ``Route`` holds a borrowed reference to the transcript as
  ``destinations[0]`` plus owned references to its source and its own
  pass-through destinations.
- ``remove_route`` closes what the route owns; only ``shutdown_session``
  closes the transcript.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from proglog.core.descriptor import Descriptor
from proglog.models.session import StreamName

logger = logging.getLogger(__name__)


class RouteError(RuntimeError):
    """Raised when a route violates the shared-transcript invariant."""


class Route:
    """One source descriptor mapped to an ordered list of destinations.

    Parameters
    ----------
    name:
        Which standard stream direction this route carries.
    source:
        The descriptor reads come from.  Owned by the route.
    destinations:
        Ordered fan-out list; element zero must be a borrowed reference
        to the transcript.
    """

    def __init__(
        self,
        name: StreamName,
        source: Descriptor,
        destinations: list[Descriptor],
    ) -> None:
        if not destinations or destinations[0].owned:
            raise RouteError(
                f"Route {name.value}: first destination must be a borrowed transcript"
            )
        self.name = name
        self.source = source
        self.destinations = list(destinations)
        # Bytes after the last newline of the previous read.
        self.partial = bytearray()

    def __repr__(self) -> str:
        dests = ", ".join(d.name for d in self.destinations)
        return f"Route({self.name.value}: {self.source.name} -> [{dests}])"

    @property
    def passthrough(self) -> list[Descriptor]:
        """Destinations owned by this route (everything after the transcript)."""
        return self.destinations[1:]

    def close(self) -> None:
        """Close the source and every pass-through destination."""
        self.source.close()
        for dest in self.passthrough:
            dest.close()


class RouteTable:
    """The session's active routes plus the transcript they share.

    Routes are addressed by ``StreamName`` rather than by position.
    """

    def __init__(self, transcript: Descriptor) -> None:
        if not transcript.owned:
            raise RouteError("RouteTable must own the transcript descriptor")
        self._transcript = transcript
        self._active: dict[StreamName, Route] = {}
        self._all: list[Route] = []

    def __iter__(self) -> Iterator[Route]:
        return iter(list(self._active.values()))

    def __len__(self) -> int:
        return len(self._active)

    def __contains__(self, name: object) -> bool:
        return name in self._active

    # ------------------------------------------------------------------
    # Route management
    # ------------------------------------------------------------------

    @property
    def transcript(self) -> Descriptor:
        return self._transcript

    def add_route(
        self,
        name: StreamName,
        source: Descriptor,
        passthrough: list[Descriptor],
    ) -> Route:
        """Create a route whose destinations are ``[transcript, *passthrough]``."""
        if name in self._active:
            raise RouteError(f"Route {name.value} already exists")
        route = Route(name, source, [self._transcript.borrow(), *passthrough])
        self._active[name] = route
        self._all.append(route)
        logger.debug("Added %r", route)
        return route

    def get(self, name: StreamName) -> Route | None:
        return self._active.get(name)

    def by_source_fd(self, fd: int) -> Route | None:
        for route in self._active.values():
            if route.source.fd == fd:
                return route
        return None

    @property
    def active_sources(self) -> list[Descriptor]:
        return [route.source for route in self._active.values()]

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def remove_route(self, route: Route) -> None:
        """Tear down one route at end-of-stream.

        Closes the source and the route's own destinations, then drops
        the route from the active set.  The transcript stays open.
        """
        route.close()
        self._active.pop(route.name, None)
        logger.debug("Removed %r (%d routes remain)", route, len(self._active))

    def shutdown_session(self) -> None:
        """Close every remaining descriptor and the transcript, once each."""
        for route in self._all:
            route.close()
        self._active.clear()
        self._transcript.close()
        logger.debug("Session descriptors closed")
