"""Tests for skillmarket SleepGuard — PID file handling and process lifecycle."""

from __future__ import annotations

import os
import signal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from skillmarket import sleepguard
from skillmarket.sleepguard import SleepGuard, is_process_running, read_pid


def _reap(pid: int) -> None:
    """Collect an exited child so it stops showing up as alive."""
    try:
        os.waitpid(pid, 0)
    except ChildProcessError:
        pass


@pytest.fixture
def pid_file(tmp_path: Path) -> Path:
    return tmp_path / "caffeinate.pid"


@pytest.fixture
def guard(pid_file: Path) -> SleepGuard:
    """A guard that runs `sleep` instead of caffeinate."""
    return SleepGuard(pid_file, command=["sleep", "60"])


class TestHelpers:
    def test_read_pid(self, pid_file: Path):
        pid_file.write_text("1234\n")
        assert read_pid(pid_file) == 1234

    def test_read_pid_garbage(self, pid_file: Path):
        pid_file.write_text("not-a-pid")
        assert read_pid(pid_file) is None

    def test_read_pid_missing(self, pid_file: Path):
        assert read_pid(pid_file) is None

    @pytest.mark.parametrize("content", ["0", "-1", "-4242\n"])
    def test_read_pid_non_positive(self, pid_file: Path, content: str):
        """0 and negative PIDs address process groups, never a single process."""
        pid_file.write_text(content)
        assert read_pid(pid_file) is None

    def test_is_process_running(self):
        assert is_process_running(os.getpid()) is True
        assert is_process_running(0) is False

    def test_default_command(self, monkeypatch):
        monkeypatch.delenv("SKILLMARKET_PID_FILE", raising=False)
        g = SleepGuard()
        assert g.command == ["caffeinate", "-i", "-t", "3600"]
        assert g.pid_file == Path("/tmp/claude_caffeinate.pid")

    def test_env_pid_file(self, monkeypatch, pid_file: Path):
        monkeypatch.setenv("SKILLMARKET_PID_FILE", str(pid_file))
        assert SleepGuard().pid_file == pid_file


class TestLifecycle:
    """Start/stop against a real background process."""

    def test_start_then_stop(self, guard: SleepGuard, pid_file: Path):
        """stop() after start() removes the PID file and ends the process."""
        pid = guard.start()
        assert read_pid(pid_file) == pid
        assert guard.current_pid() == pid

        assert guard.stop() is True
        assert not pid_file.exists()
        _reap(pid)
        assert is_process_running(pid) is False

    def test_stop_without_pid_file(self, guard: SleepGuard):
        assert guard.stop() is False

    def test_stop_with_dead_pid(self, guard: SleepGuard, pid_file: Path):
        """A stale PID is ignored and the file is still removed."""
        pid_file.write_text("999999999\n")
        assert guard.stop() is True
        assert not pid_file.exists()

    @pytest.mark.parametrize("content", ["0\n", "-1\n"])
    def test_stop_with_non_positive_pid(self, guard: SleepGuard, pid_file: Path, content: str):
        """A 0 or negative PID is stale: nothing is signalled, the file goes."""
        pid_file.write_text(content)
        with patch("skillmarket.sleepguard.os.kill") as kill:
            assert guard.stop() is True
        kill.assert_not_called()
        assert not pid_file.exists()

    def test_restart_kills_previous(self, guard: SleepGuard, pid_file: Path, monkeypatch):
        """A second start() replaces the inhibitor started by the first."""
        monkeypatch.setattr(sleepguard, "process_command", lambda pid: "sleep 60")
        first = guard.start()
        second = guard.start()
        try:
            assert first != second
            assert read_pid(pid_file) == second
            _reap(first)
            assert is_process_running(first) is False
        finally:
            guard.stop()
            _reap(second)


class TestStartSafety:
    """start() must never kill a process that isn't the inhibitor."""

    def test_foreign_process_left_alone(self, guard: SleepGuard, pid_file: Path, monkeypatch):
        pid_file.write_text(f"{os.getpid()}\n")
        monkeypatch.setattr(sleepguard, "process_command", lambda pid: "python -m pytest")

        proc = MagicMock(pid=4242)
        with patch("skillmarket.sleepguard.subprocess.Popen", return_value=proc) as popen, \
                patch("skillmarket.sleepguard.os.kill", wraps=os.kill) as kill:
            assert guard.start() == 4242

        assert not any(c.args[1] == signal.SIGTERM for c in kill.call_args_list)
        assert popen.call_args.args[0] == ["sleep", "60"]
        assert popen.call_args.kwargs["start_new_session"] is True
        assert read_pid(pid_file) == 4242

    def test_garbage_pid_file_is_replaced(self, guard: SleepGuard, pid_file: Path):
        pid_file.write_text("garbage")
        with patch("skillmarket.sleepguard.subprocess.Popen", return_value=MagicMock(pid=77)):
            guard.start()
        assert pid_file.read_text() == "77\n"

    @pytest.mark.parametrize("content", ["0\n", "-1\n"])
    def test_non_positive_pid_file_is_replaced(self, guard: SleepGuard, pid_file: Path, content: str):
        pid_file.write_text(content)
        with patch("skillmarket.sleepguard.subprocess.Popen", return_value=MagicMock(pid=77)), \
                patch("skillmarket.sleepguard.os.kill") as kill:
            assert guard.start() == 77
        kill.assert_not_called()
        assert pid_file.read_text() == "77\n"

    def test_detached_child_marked_collected(self, guard: SleepGuard):
        """The launched Popen is not left looking like a running child."""
        proc = MagicMock(pid=88, returncode=None)
        with patch("skillmarket.sleepguard.subprocess.Popen", return_value=proc):
            guard.start()
        assert proc.returncode == 0

    def test_missing_binary_raises(self, pid_file: Path):
        guard = SleepGuard(pid_file, command=["definitely-not-a-real-binary-xyz"])
        with pytest.raises(FileNotFoundError):
            guard.start()
        assert not pid_file.exists()
