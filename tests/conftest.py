"""Shared test fixtures for proglog."""

from __future__ import annotations

import itertools
import os
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from proglog.config import ProglogConfig
from proglog.core.descriptor import Descriptor
from proglog.models.session import StreamName
from proglog.routing.route import Route, RouteTable

# 2026-10-19T00:00:00Z
BASE_NS = 1_792_368_000 * 1_000_000_000


@pytest.fixture
def fixed_clock() -> Callable[[], int]:
    """A clock that always returns the same instant."""
    return lambda: BASE_NS + 123_456_789


@pytest.fixture
def ticking_clock() -> Callable[[], int]:
    """A clock that advances one millisecond per sample."""
    counter = itertools.count()
    return lambda: BASE_NS + next(counter) * 1_000_000


class PipeFactory:
    """Creates OS pipes and closes whatever ends the test left open."""

    def __init__(self) -> None:
        self._open: set[int] = set()

    def __call__(self) -> tuple[int, int]:
        read_fd, write_fd = os.pipe()
        self._open.update((read_fd, write_fd))
        return read_fd, write_fd

    def close(self, fd: int) -> None:
        self._open.discard(fd)
        os.close(fd)

    def close_all(self) -> None:
        for fd in self._open:
            os.close(fd)
        self._open.clear()


@pytest.fixture
def pipe() -> Iterator[PipeFactory]:
    """Factory for OS pipes; any end still open is closed at teardown."""
    factory = PipeFactory()
    yield factory
    factory.close_all()


@pytest.fixture
def transcript_path(tmp_path: Path) -> Path:
    return tmp_path / "transcript"


@pytest.fixture
def make_table(
    tmp_path: Path, transcript_path: Path
) -> Iterator[Callable[..., RouteTable]]:
    """Factory fixture: a RouteTable over a transcript file in tmp_path."""
    tables: list[RouteTable] = []

    def _factory() -> RouteTable:
        table = RouteTable(Descriptor.open_append(transcript_path, "transcript"))
        tables.append(table)
        return table

    yield _factory
    for table in tables:
        table.shutdown_session()


@pytest.fixture
def make_file_route(
    tmp_path: Path, pipe: PipeFactory
) -> Callable[..., tuple[Route, int]]:
    """Factory fixture: add a route fed by a pipe and teeing to a file.

    Returns the route and the write end of its source pipe.
    """

    def _factory(
        table: RouteTable,
        name: StreamName = StreamName.OUTPUT,
        dest_name: str = "passthrough",
        labelled: bool = True,
    ) -> tuple[Route, int]:
        read_fd, write_fd = pipe()
        dest_fd = os.open(tmp_path / dest_name, os.O_CREAT | os.O_WRONLY | os.O_APPEND, 0o600)
        dest = Descriptor(dest_fd, dest_name, labelled=labelled)
        # The route owns a dup so the pipe fixture can still close the original.
        source = Descriptor(os.dup(read_fd), f"{name.value}-src")
        route = table.add_route(name, source, [dest])
        return route, write_fd

    return _factory


@pytest.fixture
def session_config() -> ProglogConfig:
    """Explicit config so the test environment's PROGLOG_* vars don't leak in."""
    return ProglogConfig(
        default_log_path=Path("transcript"),
        log_level="WARNING",
        read_chunk_size=4096,
        final_drain="single",
        label_passthrough=False,
        _env_file=None,
    )


@pytest.fixture
def operator_fds(tmp_path: Path) -> Iterator[Callable[..., dict[str, int]]]:
    """Factory fixture: operator stdin/stdout/stderr backed by files.

    ``stdin`` is read from a file holding *stdin_data*; stdout and stderr
    are written to ``tmp_path/stdout`` and ``tmp_path/stderr``.
    """
    opened: list[int] = []

    def _factory(stdin_data: bytes = b"") -> dict[str, int]:
        stdin_file = tmp_path / "stdin"
        stdin_file.write_bytes(stdin_data)
        fds = {
            "stdin_fd": os.open(stdin_file, os.O_RDONLY),
            "stdout_fd": os.open(tmp_path / "stdout", os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600),
            "stderr_fd": os.open(tmp_path / "stderr", os.O_CREAT | os.O_WRONLY | os.O_TRUNC, 0o600),
        }
        opened.extend(fds.values())
        return fds

    yield _factory
    for fd in opened:
        try:
            os.close(fd)
        except OSError:
            pass
