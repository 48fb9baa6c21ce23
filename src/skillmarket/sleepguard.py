"""skillmarket SleepGuard — keep the machine awake while an agent session runs.

Wraps macOS `caffeinate`: start() launches it in the background for up to an
hour and records its PID; stop() kills it again. Both are wired to the host's
session start/end hooks and must never fail the host, so a missing process
or PID file is a no-op.

PID file:
    /tmp/claude_caffeinate.pid     # decimal PID, nothing else
"""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from pathlib import Path
from typing import Optional, Sequence

logger = logging.getLogger("skillmarket.sleepguard")

DEFAULT_PID_FILE = Path("/tmp/claude_caffeinate.pid")
DEFAULT_TIMEOUT_S = 3600
INHIBITOR = "caffeinate"


def _default_pid_file() -> Path:
    """Resolve the PID file path, respecting SKILLMARKET_PID_FILE env var."""
    env = os.environ.get("SKILLMARKET_PID_FILE")
    if env:
        return Path(env)
    return DEFAULT_PID_FILE


def read_pid(pid_file: Path) -> Optional[int]:
    """Read the PID recorded in a PID file.

    Returns:
        int or None if the file is missing, unreadable or not a positive
        number. 0 and negative values would signal whole process groups.
    """
    try:
        pid = int(pid_file.read_text().strip())
    except (OSError, ValueError):
        return None
    if pid <= 0:
        return None
    return pid


def is_process_running(pid: int) -> bool:
    """Check whether a process exists (signal 0 probes without delivering)."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def process_command(pid: int) -> str:
    """Full command line of a process, or "" if it can't be read."""
    try:
        result = subprocess.run(
            ["ps", "-p", str(pid), "-o", "args="],
            capture_output=True,
            text=True,
            timeout=5,
        )
    except (OSError, subprocess.SubprocessError):
        return ""
    return result.stdout.strip()


class SleepGuard:
    """Start and stop a background sleep-inhibitor process tracked by a PID file.

    Args:
        pid_file: Where the inhibitor's PID is recorded.
        command: Inhibitor command line; its first element is also the name
            a recorded process must carry before start() will kill it.
    """

    def __init__(
        self,
        pid_file: Optional[Path] = None,
        command: Optional[Sequence[str]] = None,
    ) -> None:
        self.pid_file = pid_file or _default_pid_file()
        self.command = list(command or [INHIBITOR, "-i", "-t", str(DEFAULT_TIMEOUT_S)])

    @property
    def process_name(self) -> str:
        return os.path.basename(self.command[0])

    def current_pid(self) -> Optional[int]:
        """PID of the recorded inhibitor if it is still running."""
        pid = read_pid(self.pid_file)
        if pid is None or not is_process_running(pid):
            return None
        return pid

    def start(self) -> int:
        """Replace any inhibitor started earlier with a fresh one.

        A previously recorded process is only killed if it is alive and its
        command line starts with the inhibitor name, so a recycled PID is
        never touched.

        Returns:
            int: PID of the new inhibitor process.

        Raises:
            FileNotFoundError: If the inhibitor binary isn't installed.
        """
        if self.pid_file.exists():
            old_pid = read_pid(self.pid_file)
            if old_pid is not None and is_process_running(old_pid):
                if process_command(old_pid).startswith(self.process_name):
                    self._terminate(old_pid)
                else:
                    logger.debug("PID %d is not %s, leaving it alone", old_pid, self.process_name)
            self.pid_file.unlink(missing_ok=True)

        proc = subprocess.Popen(
            self.command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
        self.pid_file.parent.mkdir(parents=True, exist_ok=True)
        self.pid_file.write_text(f"{proc.pid}\n")
        # Detached on purpose; mark it collected so Popen.__del__ stays quiet.
        proc.returncode = 0
        logger.info("Started %s (PID %d)", self.process_name, proc.pid)
        return proc.pid

    def stop(self) -> bool:
        """Kill the recorded inhibitor and remove the PID file.

        Returns:
            bool: True if a PID file was present.
        """
        if not self.pid_file.exists():
            return False

        pid = read_pid(self.pid_file)
        if pid is not None:
            self._terminate(pid)
        self.pid_file.unlink(missing_ok=True)
        return True

    @staticmethod
    def _terminate(pid: int) -> None:
        try:
            os.kill(pid, signal.SIGTERM)
            logger.info("Stopped PID %d", pid)
        except (OSError, ProcessLookupError):
            logger.debug("PID %d already gone", pid)
