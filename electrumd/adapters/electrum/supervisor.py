"""Process supervision for a spawned Electrum daemon.

Handles spawning, readiness polling and termination of a single process.

State machine:
    STARTING -> READY -> STOPPED
    STARTING -> FAILED (spawn error, early exit or startup timeout)
"""

import contextlib
import logging
import os
import signal
import subprocess
import time
from collections.abc import Callable
from pathlib import Path
from typing import IO

from electrumd.domain.config import InstanceState
from electrumd.domain.exceptions import (
    ElectrumdError,
    ElectrumdIOError,
    NotFoundError,
    ProcessExitedError,
    StartupTimeoutError,
)
from electrumd.shared.timeouts import ElectrumdTimeouts

logger = logging.getLogger(__name__)

STDERR_TAIL_BYTES = 4096


class ProcessSupervisor:
    """Owns exactly one daemon OS process."""

    def __init__(
        self,
        cmd: list[str],
        env: dict[str, str] | None = None,
        view_stdout: bool = False,
        stderr_path: Path | None = None,
    ):
        """Initialize supervisor.

        Args:
            cmd: Command to execute
            env: Process environment (default: inherit)
            view_stdout: Inherit stdout instead of discarding it
            stderr_path: File receiving the process stderr, reported on
                failures (default: discard)
        """
        self.cmd = cmd
        self.env = env
        self.view_stdout = view_stdout
        self.stderr_path = stderr_path
        self._process: subprocess.Popen | None = None
        self._stderr_file: IO[bytes] | None = None
        self._state = InstanceState.STARTING
        self._group_gone = False

    @property
    def state(self) -> InstanceState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def returncode(self) -> int | None:
        if self._process is None:
            return None
        return self._process.poll()

    def is_alive(self) -> bool:
        """Check if the process has been spawned and not exited yet."""
        return self._process is not None and self._process.poll() is None

    def spawn(self) -> subprocess.Popen:
        """Start the process.

        The process is placed in its own session so that teardown can signal
        the whole process group (the AppImage runtime forks the real daemon).

        Returns:
            The spawned process

        Raises:
            NotFoundError: If the executable is missing or not executable
            ElectrumdIOError: For other spawn failures
        """
        if self._process is not None:
            raise RuntimeError("Process already spawned")

        logger.debug(f"Launching {self.cmd}")
        try:
            if self.stderr_path is not None:
                self._stderr_file = self.stderr_path.open("wb")
            self._process = subprocess.Popen(
                self.cmd,
                stdout=None if self.view_stdout else subprocess.DEVNULL,
                stderr=self._stderr_file if self._stderr_file else subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
                start_new_session=True,
                env=self.env,
            )
        except (FileNotFoundError, PermissionError) as e:
            self._fail()
            raise NotFoundError(f"Failed to launch {self.cmd[0]}: {e}") from e
        except OSError as e:
            self._fail()
            raise ElectrumdIOError(f"Failed to launch {self.cmd[0]}: {e}") from e

        logger.info(f"Launched daemon with PID {self._process.pid}")
        return self._process

    def _fail(self) -> None:
        self._state = InstanceState.FAILED
        self._close_stderr()

    def _close_stderr(self) -> None:
        if self._stderr_file is not None:
            with contextlib.suppress(OSError):
                self._stderr_file.close()
            self._stderr_file = None

    def read_stderr_tail(self, limit: int = STDERR_TAIL_BYTES) -> str:
        """Return the last bytes the process wrote to stderr.

        Returns:
            Decoded stderr tail, or empty string if unavailable
        """
        if self.stderr_path is None:
            return ""
        try:
            with self.stderr_path.open("rb") as f:
                f.seek(0, os.SEEK_END)
                size = f.tell()
                f.seek(max(0, size - limit))
                data = f.read()
        except OSError:
            logger.debug(f"Failed to read stderr log {self.stderr_path}")
            return ""
        return data.decode("utf-8", errors="replace").strip()

    def wait_ready(
        self,
        check: Callable[[], bool],
        timeout: float = ElectrumdTimeouts.READY_WAIT_DEFAULT,
        interval: float = ElectrumdTimeouts.READY_CHECK_INTERVAL,
    ) -> None:
        """Poll check() until it returns True.

        An ElectrumdError raised by check() counts as "not ready yet".

        Args:
            check: Readiness probe
            timeout: Maximum seconds to wait
            interval: Seconds between probes

        Raises:
            ProcessExitedError: If the process exits before becoming ready
            StartupTimeoutError: If timeout elapses; the process is
                terminated before raising
        """
        if self._process is None:
            raise RuntimeError("wait_ready() called before spawn()")

        started = time.monotonic()
        deadline = started + timeout
        while True:
            exit_code = self._process.poll()
            if exit_code is not None:
                self._fail()
                stderr_output = self.read_stderr_tail()
                error_msg = f"Daemon exited during startup (exit code: {exit_code})"
                if stderr_output:
                    error_msg += f"\nStderr: {stderr_output}"
                raise ProcessExitedError(error_msg, returncode=exit_code, stderr=stderr_output)

            try:
                ready = check()
            except ElectrumdError as e:
                logger.debug(f"Readiness check raised: {e}")
                ready = False

            if ready:
                self._state = InstanceState.READY
                logger.info(f"Daemon is ready (took {time.monotonic() - started:.1f}s)")
                return

            if time.monotonic() >= deadline:
                break
            time.sleep(interval)

        pid = self.pid
        logger.warning(f"Daemon process {pid} not responding after {timeout}s, terminating...")
        self.terminate()
        self._state = InstanceState.FAILED
        raise StartupTimeoutError(
            f"Daemon process {pid} started but did not become ready within {timeout}s. "
            "Process was terminated.",
            pid=pid,
            timeout=timeout,
            hint="Increase Conf.startup_timeout or run with view_stdout=True",
        )

    def wait(self, timeout: float) -> int | None:
        """Wait for the process to exit on its own.

        Returns:
            Exit code, or None if still running after timeout
        """
        if self._process is None:
            return None
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def _signal_group(self, sig: signal.Signals) -> bool:
        """Send sig to the process group, falling back to the process itself.

        Returns:
            False if the process was already gone
        """
        assert self._process is not None
        try:
            os.killpg(self._process.pid, sig)
            return True
        except ProcessLookupError:
            return False
        except (AttributeError, PermissionError):
            # No process groups on this platform or not our group
            pass
        try:
            self._process.send_signal(sig)
            return True
        except ProcessLookupError:
            return False

    def _stop_with_signal(self, sig: signal.Signals, timeout: float) -> bool:
        """Send a signal and wait for the process to exit.

        Returns:
            True if the process exited within timeout
        """
        if not self._signal_group(sig):
            return True
        return self.wait(timeout) is not None

    def terminate(
        self,
        sigterm_wait: float = ElectrumdTimeouts.SIGTERM_WAIT,
        sigkill_wait: float = ElectrumdTimeouts.SIGKILL_WAIT,
    ) -> int | None:
        """Stop the process, escalating from SIGTERM to SIGKILL.

        Processes left in the daemon's process group are stopped the same
        way, also when the daemon itself has already exited (the AppImage
        runtime may leave the real daemon behind).

        Safe to call multiple times and after the process already exited.
        Never raises: failures are logged.

        Returns:
            Exit code, or None if the process never ran or survived SIGKILL
        """
        try:
            return self._terminate(sigterm_wait, sigkill_wait)
        except OSError as e:
            logger.error(f"Failed to terminate daemon process {self.pid}: {e}")
            return None
        finally:
            self._close_stderr()
            if self._state is not InstanceState.FAILED:
                self._state = InstanceState.STOPPED

    def _terminate(self, sigterm_wait: float, sigkill_wait: float) -> int | None:
        if self._process is None:
            return None

        exit_code = self._process.poll()
        if exit_code is not None:
            logger.debug(f"Daemon process {self._process.pid} already exited ({exit_code})")
        else:
            exit_code = self._stop_leader(sigterm_wait, sigkill_wait)

        self._sweep_group(sigterm_wait, sigkill_wait)
        return exit_code

    def _stop_leader(self, sigterm_wait: float, sigkill_wait: float) -> int | None:
        assert self._process is not None
        logger.info(f"Stopping daemon (PID {self._process.pid})...")
        if self._stop_with_signal(signal.SIGTERM, sigterm_wait):
            logger.info("Daemon stopped gracefully")
            return self._process.poll()

        logger.warning("Daemon did not stop gracefully, sending SIGKILL...")
        if self._stop_with_signal(signal.SIGKILL, sigkill_wait):
            logger.info("Daemon force-killed")
            return self._process.poll()

        logger.error(f"Daemon process {self._process.pid} survived SIGKILL! Manual cleanup required.")
        return None

    def _group_alive(self) -> bool:
        """Check if any process is left in the daemon's process group."""
        assert self._process is not None
        try:
            os.killpg(self._process.pid, 0)
        except ProcessLookupError:
            return False
        except PermissionError:
            return True
        return True

    def _wait_group_gone(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        while self._group_alive():
            if time.monotonic() >= deadline:
                return False
            time.sleep(ElectrumdTimeouts.DEATH_CHECK_INTERVAL)
        return True

    def _sweep_group(self, sigterm_wait: float, sigkill_wait: float) -> None:
        """Stop processes the daemon forked that outlived it.

        The group id is only signalled until it is seen empty once, so a
        later call cannot hit an unrelated group that reused the id.
        """
        if self._process is None or self._group_gone:
            return
        pgid = self._process.pid
        for sig, timeout in ((signal.SIGTERM, sigterm_wait), (signal.SIGKILL, sigkill_wait)):
            try:
                os.killpg(pgid, sig)
            except ProcessLookupError:
                self._group_gone = True
                return
            except (AttributeError, PermissionError) as e:
                logger.debug(f"Cannot signal process group {pgid}: {e}")
                return
            logger.warning(f"Sent {sig.name} to leftover processes in group {pgid}")
            if self._wait_group_gone(timeout):
                self._group_gone = True
                return

        logger.error(f"Processes in group {pgid} survived SIGKILL! Manual cleanup required.")
