"""Tests for Descriptor — ownership, idempotent close, non-blocking I/O."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from proglog.core.descriptor import Descriptor, DescriptorState
from proglog.core.syscalls import FatalSystemCallError


def _is_open(fd: int) -> bool:
    try:
        os.fstat(fd)
    except OSError:
        return False
    return True


class TestOwnership:
    def test_owned_close_releases_fd(self, pipe):
        read_fd, _ = pipe()
        desc = Descriptor(os.dup(read_fd), "src")
        fd = desc.fd
        desc.close()
        assert desc.closed
        assert desc.state is DescriptorState.CLOSED
        assert not _is_open(fd)

    def test_borrowed_close_leaves_fd_open(self, pipe):
        read_fd, _ = pipe()
        owner = Descriptor(os.dup(read_fd), "src")
        ref = owner.borrow()
        ref.close()
        assert ref.closed
        assert not ref.owned
        assert _is_open(owner.fd)
        owner.close()

    def test_close_is_idempotent(self, pipe, monkeypatch):
        read_fd, _ = pipe()
        desc = Descriptor(os.dup(read_fd), "src")
        calls: list[int] = []
        real_close = os.close

        def counting_close(fd: int) -> None:
            calls.append(fd)
            real_close(fd)

        monkeypatch.setattr(os, "close", counting_close)
        desc.close()
        desc.close()
        assert calls == [desc.fd]

    def test_context_manager_closes(self, pipe):
        read_fd, _ = pipe()
        with Descriptor(os.dup(read_fd), "src") as desc:
            assert desc.state is DescriptorState.OPEN
        assert desc.closed

    def test_duplicate_leaves_original_open(self, pipe):
        read_fd, _ = pipe()
        dup = Descriptor.duplicate(read_fd, "copy")
        assert dup.fd != read_fd
        dup.close()
        assert _is_open(read_fd)

    def test_borrow_keeps_labelled_flag(self, pipe):
        _, write_fd = pipe()
        owner = Descriptor(os.dup(write_fd), "dest", labelled=False)
        assert owner.borrow().labelled is False
        owner.close()

    def test_close_failure_is_fatal(self, pipe):
        read_fd, _ = pipe()
        fd = os.dup(read_fd)
        desc = Descriptor(fd, "src")
        os.close(fd)
        with pytest.raises(FatalSystemCallError) as excinfo:
            desc.close()
        assert excinfo.value.primitive == "close"


class TestOpenAppend:
    def test_creates_file_with_mode(self, tmp_path: Path):
        path = tmp_path / "log"
        with Descriptor.open_append(path, "transcript", 0o600) as desc:
            desc.write_all(b"x\n")
        assert path.read_bytes() == b"x\n"
        assert path.stat().st_mode & 0o777 == 0o600

    def test_appends_to_existing(self, tmp_path: Path):
        path = tmp_path / "log"
        path.write_bytes(b"old\n")
        with Descriptor.open_append(path, "transcript") as desc:
            desc.write_all(b"new\n")
        assert path.read_bytes() == b"old\nnew\n"

    def test_open_failure_is_fatal(self, tmp_path: Path):
        with pytest.raises(FatalSystemCallError) as excinfo:
            Descriptor.open_append(tmp_path / "missing-dir" / "log", "transcript")
        assert excinfo.value.primitive == "open"


class TestReadWrite:
    def test_read_would_block_returns_none(self, pipe):
        read_fd, _ = pipe()
        with Descriptor(os.dup(read_fd), "src") as desc:
            desc.set_nonblocking()
            assert desc.read(16) is None

    def test_read_end_of_stream_returns_empty(self, pipe):
        read_fd, write_fd = pipe()
        with Descriptor(os.dup(read_fd), "src") as desc:
            desc.set_nonblocking()
            os.write(write_fd, b"abc")
            pipe.close(write_fd)
            assert desc.read(16) == b"abc"
            assert desc.read(16) == b""

    def test_close_restores_blocking_mode(self, pipe):
        read_fd, _ = pipe()
        desc = Descriptor.duplicate(read_fd, "src")
        desc.set_nonblocking()
        # dup() shares the open file description, so the flag is visible here.
        assert os.get_blocking(read_fd) is False
        desc.close()
        assert os.get_blocking(read_fd) is True

    def test_sync_on_pipe_is_a_no_op(self, pipe):
        _, write_fd = pipe()
        with Descriptor(os.dup(write_fd), "dest") as desc:
            desc.write_all(b"x")
            desc.sync()

    def test_sync_on_regular_file(self, tmp_path: Path, monkeypatch):
        synced: list[int] = []
        real_fsync = os.fsync
        monkeypatch.setattr(os, "fsync", lambda fd: (synced.append(fd), real_fsync(fd)))
        with Descriptor.open_append(tmp_path / "log", "transcript") as desc:
            desc.write_all(b"x\n")
            desc.sync()
            assert synced == [desc.fd]

    def test_write_all_handles_short_writes(self, tmp_path: Path, monkeypatch):
        real_write = os.write
        monkeypatch.setattr(os, "write", lambda fd, data: real_write(fd, bytes(data[:2])))
        with Descriptor.open_append(tmp_path / "log", "transcript") as desc:
            desc.write_all(b"abcdefg")
        assert (tmp_path / "log").read_bytes() == b"abcdefg"

    def test_write_to_closed_reader_is_fatal(self, pipe):
        read_fd, write_fd = pipe()
        pipe.close(read_fd)
        with Descriptor(os.dup(write_fd), "child-stdin") as desc:
            with pytest.raises(FatalSystemCallError) as excinfo:
                desc.write_all(b"nobody listening\n")
        assert excinfo.value.primitive == "write"
