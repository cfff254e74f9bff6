"""FdMultiplexer — the single-threaded reactor driving a session.

Loop, while not TERMINATED:
1. Recompute the watched descriptors from the active routes.
2. Wait for readiness (no timeout while the child runs).
3. Drain every ready source until it would block or hits end-of-stream,
   handing each read to the sink; end-of-stream removes the route.
4. RUNNING: poll the child without blocking; on death move to
   CHILD_DEAD_DRAINING and make one more pass.
5. CHILD_DEAD_DRAINING: move to TERMINATED, or with the ``until_eof``
   policy keep waiting until the child's stdout and stderr both close.

On TERMINATED, partial lines still held on routes that never reached
end-of-stream are written to the transcript before returning.

Bytes from one source reach its destinations in read order.  Ordering
across sources follows the order the selector reports them in.
"""

from __future__ import annotations

import logging
import selectors

from proglog.core.child import ChildProcess
from proglog.core.syscalls import syscall
from proglog.models.session import (
    VALID_TRANSITIONS,
    ChildOutcome,
    StreamName,
    WatcherState,
)
from proglog.routing.route import Route, RouteTable
from proglog.routing.sinks import BaseSink

logger = logging.getLogger(__name__)

_CHILD_OUTPUT = (StreamName.OUTPUT, StreamName.ERROR)


class InvalidTransitionError(RuntimeError):
    """Raised when the watcher is asked to make an illegal state change."""


class ChildSignaled(RuntimeError):
    """Raised when the child was terminated by a signal."""

    def __init__(self, outcome: ChildOutcome) -> None:
        self.outcome = outcome
        self.signum = outcome.signum
        super().__init__(f"terminated by signal {outcome.signum}")


class FdMultiplexer:
    """Relays and records every route until the child is gone.

    Parameters
    ----------
    routes:
        The session's route table.  Routes are removed from it as their
        sources reach end-of-stream.
    child:
        The launched child.
    sink:
        Receives every successful read.
    read_size:
        Maximum bytes per ``read``.
    final_drain:
        ``"single"`` makes exactly one non-blocking pass after the child
        is reaped.  ``"until_eof"`` keeps waiting on the child's stdout
        and stderr until both reach end-of-stream.
    """

    def __init__(
        self,
        routes: RouteTable,
        child: ChildProcess,
        sink: BaseSink,
        *,
        read_size: int = 4096,
        final_drain: str = "single",
    ) -> None:
        if final_drain not in ("single", "until_eof"):
            raise ValueError(f"unknown final_drain policy: {final_drain!r}")
        self._routes = routes
        self._child = child
        self._sink = sink
        self._read_size = read_size
        self._final_drain = final_drain
        self._state = WatcherState.RUNNING
        self._outcome: ChildOutcome | None = None
        # poll() reports regular files and /dev/null as always readable;
        # epoll refuses to register them.
        self._selector = selectors.PollSelector()

    @property
    def state(self) -> WatcherState:
        return self._state

    @property
    def outcome(self) -> ChildOutcome | None:
        return self._outcome

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def _transition(self, target: WatcherState) -> None:
        allowed = VALID_TRANSITIONS.get(self._state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition watcher from {self._state.value} to {target.value}"
            )
        logger.debug("Watcher %s -> %s", self._state.value, target.value)
        self._state = target

    def run(self) -> int:
        """Run until TERMINATED and return the child's exit code.

        Raises
        ------
        ChildSignaled
            If the child was killed by a signal.
        FatalSystemCallError
            On any failed read, write, sync, close or wait.
        """
        for source in self._routes.active_sources:
            source.set_nonblocking()

        try:
            while self._state is not WatcherState.TERMINATED:
                self._pass()
                self._advance()
            self._flush_unterminated()
        finally:
            self._selector.close()

        assert self._outcome is not None
        if self._outcome.signaled:
            raise ChildSignaled(self._outcome)
        return self._outcome.exit_code

    def _advance(self) -> None:
        if self._state is WatcherState.RUNNING:
            outcome = self._child.poll()
            if outcome is not None:
                self._outcome = outcome
                self._transition(WatcherState.CHILD_DEAD_DRAINING)
            return

        if self._final_drain == "until_eof" and any(
            name in self._routes for name in _CHILD_OUTPUT
        ):
            return
        self._transition(WatcherState.TERMINATED)

    # ------------------------------------------------------------------
    # One readiness pass
    # ------------------------------------------------------------------

    def _watched(self) -> tuple[dict[int, Route | None], float | None]:
        """Descriptors for this pass and the wait timeout."""
        if self._state is WatcherState.RUNNING:
            watched: dict[int, Route | None] = {
                route.source.fd: route for route in self._routes
            }
            watched[self._child.fileno()] = None
            return watched, None

        if self._final_drain == "until_eof":
            watched = {
                route.source.fd: route
                for route in self._routes
                if route.name in _CHILD_OUTPUT
            }
            return watched, (None if watched else 0)

        return {route.source.fd: route for route in self._routes}, 0

    def _sync_selector(self, watched: dict[int, Route | None]) -> None:
        registered = self._selector.get_map()
        with syscall("select"):
            for fd in [fd for fd in registered if fd not in watched]:
                self._selector.unregister(fd)
            for fd, route in watched.items():
                if fd not in registered:
                    self._selector.register(fd, selectors.EVENT_READ, route)

    def _pass(self) -> None:
        watched, timeout = self._watched()
        self._sync_selector(watched)

        with syscall("select"):
            ready = self._selector.select(timeout)

        for key, _mask in ready:
            route = key.data
            if route is None:
                self._child.acknowledge()
            elif route.name in self._routes:
                self._drain(route)

    def _drain(self, route: Route) -> None:
        while True:
            data = route.source.read(self._read_size)
            if data is None:
                return
            if not data:
                logger.debug("%s reached end-of-stream", route.source.name)
                self._sink.flush_partial(route)
                with syscall("select"):
                    self._selector.unregister(route.source.fd)
                self._routes.remove_route(route)
                return
            self._sink.deliver(route, data, len(data))

    def _flush_unterminated(self) -> None:
        """Record partial lines held on routes that never reached EOF.

        A background process can keep the child's pipes open past the
        final drain, and operator stdin usually stays open.  Their held
        bytes were already relayed and go to the transcript before
        shutdown.
        """
        for route in self._routes:
            self._sink.flush_partial(route)
