"""Session — one audited run of a child command.

Start-up order:
1. Open the transcript (append-only, created if absent).
2. Write the synthetic ``$ argv...`` record.
3. Create the pipes and the three routes (input, output, error).
4. Launch the child.
5. Run the watcher until the child is reaped and the streams drained.

``shutdown_session`` runs on every exit path, so each descriptor is
released exactly once whether the run ends normally, by signal, or on a
fatal error.
"""

from __future__ import annotations

import logging
import signal
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import ExitStack, contextmanager
from pathlib import Path

from proglog.config import ProglogConfig
from proglog.config import config as default_config
from proglog.core.child import ChildProcess
from proglog.core.descriptor import Descriptor
from proglog.core.launcher import StandardPipes, create_pipes, launch, release_child_ends
from proglog.core.timestamp import now_label
from proglog.core.watcher import FdMultiplexer
from proglog.models.session import StreamName
from proglog.routing.route import RouteTable
from proglog.routing.sinks._formatting import format_command
from proglog.routing.sinks.line_tee import LineTeeSink

logger = logging.getLogger(__name__)


@contextmanager
def _interrupts_ignored() -> Iterator[None]:
    """Ignore SIGINT in this process; the child still receives its own."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


class Session:
    """Runs *argv* with its standard streams relayed and recorded.

    Parameters
    ----------
    argv:
        The child command and its arguments.
    log_path:
        Transcript file.  Defaults to ``config.default_log_path``.
    stdin_fd, stdout_fd, stderr_fd:
        The operator's endpoints.  They are duplicated, never closed.
    config:
        Session configuration.  Defaults to the module-level singleton.
    clock:
        Nanosecond wall clock used for every label.
    """

    def __init__(
        self,
        argv: Sequence[str],
        log_path: Path | str | None = None,
        *,
        stdin_fd: int = 0,
        stdout_fd: int = 1,
        stderr_fd: int = 2,
        config: ProglogConfig | None = None,
        clock: Callable[[], int] = time.time_ns,
    ) -> None:
        if not argv:
            raise ValueError("Session needs a command to run")
        self._config = config or default_config
        self._argv = list(argv)
        self._log_path = Path(log_path) if log_path else self._config.default_log_path
        self._operator = {
            StreamName.INPUT: stdin_fd,
            StreamName.OUTPUT: stdout_fd,
            StreamName.ERROR: stderr_fd,
        }
        self._clock = clock
        self._child: ChildProcess | None = None

    @property
    def argv(self) -> list[str]:
        return list(self._argv)

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def child(self) -> ChildProcess | None:
        return self._child

    def run(self) -> int:
        """Run the session and return the child's exit code.

        Raises
        ------
        ChildSignaled
            If the child was killed by a signal.
        FatalSystemCallError
            If any OS primitive failed.
        """
        transcript = Descriptor.open_append(
            self._log_path, "transcript", self._config.transcript_mode
        )
        routes = RouteTable(transcript)
        try:
            self._log_command(transcript)
            pipes = create_pipes()
            try:
                self._build_routes(routes, pipes)
            except BaseException:
                release_child_ends(pipes)
                raise
            self._child = launch(self._argv, pipes)
            logger.info("Recording %s to %s", self._argv[0], self._log_path)
            try:
                with _interrupts_ignored():
                    watcher = FdMultiplexer(
                        routes,
                        self._child,
                        LineTeeSink(self._clock, self._config.max_partial_line),
                        read_size=self._config.read_chunk_size,
                        final_drain=self._config.final_drain,
                    )
                    return watcher.run()
            finally:
                self._child.close()
        finally:
            routes.shutdown_session()

    # ------------------------------------------------------------------
    # Start-up helpers
    # ------------------------------------------------------------------

    def _log_command(self, transcript: Descriptor) -> None:
        transcript.write_all(now_label(self._clock) + format_command(self._argv))
        transcript.sync()

    def _build_routes(self, routes: RouteTable, pipes: StandardPipes) -> None:
        """Wrap the parent pipe ends and operator fds into the three routes."""
        labelled = self._config.label_passthrough
        with ExitStack() as stack:

            def own(descriptor: Descriptor) -> Descriptor:
                stack.callback(descriptor.close)
                return descriptor

            child_stdin = own(Descriptor(pipes.stdin.write, "child-stdin", labelled=labelled))
            child_stdout = own(Descriptor(pipes.stdout.read, "child-stdout"))
            child_stderr = own(Descriptor(pipes.stderr.read, "child-stderr"))
            operator_stdin = own(
                Descriptor.duplicate(self._operator[StreamName.INPUT], "operator-stdin")
            )
            operator_stdout = own(
                Descriptor.duplicate(
                    self._operator[StreamName.OUTPUT], "operator-stdout", labelled=labelled
                )
            )
            operator_stderr = own(
                Descriptor.duplicate(
                    self._operator[StreamName.ERROR], "operator-stderr", labelled=labelled
                )
            )

            routes.add_route(StreamName.INPUT, operator_stdin, [child_stdin])
            routes.add_route(StreamName.OUTPUT, child_stdout, [operator_stdout])
            routes.add_route(StreamName.ERROR, child_stderr, [operator_stderr])
            stack.pop_all()
