"""Test fixtures module."""

import os
import shlex
import sys
import time
from pathlib import Path

FAKE_ELECTRUM_SCRIPT = Path(__file__).parent / "fake_electrum.py"

# Captured at import, before the autouse env-scrubbing fixture runs, so the
# real-binary tests can still find it.
REAL_ELECTRUM_EXE = os.environ.get("ELECTRUMD_EXE")


def write_fake_exe(
    directory: Path,
    mode: str = "serve",
    delay: float = 0.0,
    name: str | None = None,
) -> Path:
    """Write an executable wrapper around the fake Electrum script.

    The fake is a Python script; a small sh wrapper makes it look like a
    standalone executable and bakes in the behaviour mode, so concurrently
    running fakes don't depend on the shared test process environment.

    Args:
        directory: Where to create the wrapper.
        mode: FAKE_ELECTRUM_MODE value (serve, exit, hang, stubborn).
        delay: Seconds the fake waits before serving.
        name: File name (default: derived from mode).

    Returns:
        Path to the executable wrapper.
    """
    directory.mkdir(parents=True, exist_ok=True)
    exe = directory / (name or f"electrum-{mode}")
    exe.write_text(
        "#!/bin/sh\n"
        f"export FAKE_ELECTRUM_MODE={shlex.quote(mode)}\n"
        f"export FAKE_ELECTRUM_DELAY={delay}\n"
        f"exec {shlex.quote(sys.executable)} {shlex.quote(str(FAKE_ELECTRUM_SCRIPT))} \"$@\"\n"
    )
    exe.chmod(0o755)
    return exe


def pid_alive(pid: int) -> bool:
    """Check if a process with pid exists."""
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


def wait_gone(pid: int, timeout: float = 5.0) -> bool:
    """Wait until no process with pid exists."""
    deadline = time.monotonic() + timeout
    while pid_alive(pid):
        if time.monotonic() > deadline:
            return False
        time.sleep(0.05)
    return True


__all__ = [
    "FAKE_ELECTRUM_SCRIPT",
    "REAL_ELECTRUM_EXE",
    "pid_alive",
    "wait_gone",
    "write_fake_exe",
]
