"""Headless Electrum daemon instance for integration tests.

Example:
    with ElectrumD(exe_path()) as electrumd:
        print(electrumd.call("version"))

The directory and process are released on close(), on context manager exit,
when the handle is garbage collected, or at interpreter exit, whichever comes
first.
"""

import logging
import os
import weakref
from pathlib import Path
from typing import Any

from electrumd.adapters.electrum.layout import (
    build_command,
    prepare_datadir,
    rand_string,
    wallet_path,
)
from electrumd.adapters.electrum.rpc import ElectrumRpcClient
from electrumd.adapters.electrum.supervisor import ProcessSupervisor
from electrumd.adapters.exe.locator import resolve_exe_path, validate_exe
from electrumd.adapters.fs.workdir import RuntimeDir
from electrumd.adapters.net.port_allocator import get_available_port
from electrumd.domain.config import RPC_USER, Conf, ConnectParams, InstanceState
from electrumd.domain.exceptions import ElectrumdError
from electrumd.ports.rpc import RpcClient
from electrumd.shared.timeouts import ElectrumdTimeouts

logger = logging.getLogger(__name__)

STDERR_LOG_NAME = "electrumd-stderr.log"


class _Resources:
    """Resources owned by one instance, released together.

    Kept separate from ElectrumD so the finalizer does not hold a reference
    to the handle itself.
    """

    def __init__(self, workdir: RuntimeDir):
        self.workdir = workdir
        self.supervisor: ProcessSupervisor | None = None
        self.client: RpcClient | None = None

    def release(self) -> None:
        """Stop the daemon and delete the workdir. Never raises."""
        supervisor, client = self.supervisor, self.client
        if supervisor is not None and client is not None and supervisor.is_alive():
            if supervisor.state is InstanceState.READY:
                # Ask nicely first so Electrum can flush wallets
                try:
                    client.call("stop", timeout=ElectrumdTimeouts.HEALTH_CHECK)
                    supervisor.wait(ElectrumdTimeouts.SIGTERM_WAIT)
                except ElectrumdError as e:
                    logger.debug(f"RPC stop failed during teardown: {e}")
        if supervisor is not None:
            supervisor.terminate()
        if client is not None:
            try:
                client.close()
            except Exception as e:
                logger.warning(f"Failed to close RPC client: {e}")
        self.workdir.cleanup()


class ElectrumD:
    """A running Electrum daemon with its own datadir and RPC port.

    Attributes:
        client: JSON-RPC client connected to this daemon
        params: Information needed to connect to this daemon
        conf: Configuration the daemon was launched with
        exe: Executable that was launched
    """

    def __init__(self, exe: str | os.PathLike[str], conf: Conf | None = None):
        """Launch the daemon and wait until it answers RPC requests.

        Args:
            exe: Path to the Electrum executable (e.g. the AppImage)
            conf: Launch configuration (default: Conf.default())

        Raises:
            NotFoundError: If exe is not an executable file
            ElectrumdIOError: If the runtime directory or config can't be written
            PortUnavailableError: If no RPC port could be allocated
            ProcessExitedError: If the daemon died during startup
            StartupTimeoutError: If the daemon didn't become ready in time
            RpcError: If creating or loading the default wallet failed
        """
        self.conf = conf or Conf.default()
        self.exe = validate_exe(exe)

        workdir = RuntimeDir(self.conf.tmpdir)
        self._resources = _Resources(workdir)
        self._finalizer = weakref.finalize(self, self._resources.release)

        try:
            self._launch()
        except BaseException:
            logger.debug("Startup failed, releasing partially acquired resources")
            self._finalizer()
            raise

    @classmethod
    def with_conf(cls, exe: str | os.PathLike[str], conf: Conf) -> "ElectrumD":
        """Launch the daemon from exe with the given conf."""
        return cls(exe, conf)

    @classmethod
    def from_env(cls, conf: Conf | None = None, download: bool = False) -> "ElectrumD":
        """Launch the executable from ELECTRUMD_EXE or the download cache.

        Args:
            conf: Launch configuration
            download: Download Electrum if no executable is found
        """
        return cls(resolve_exe_path(download=download), conf)

    def _launch(self) -> None:
        datadir = self._resources.workdir.path
        logger.debug(f"work_dir: {datadir}")

        self.params = ConnectParams(
            datadir=datadir,
            rpc_port=get_available_port(),
            rpc_user=RPC_USER,
            rpc_password=rand_string(),
        )
        prepare_datadir(
            datadir,
            self.conf,
            self.params.rpc_port,
            self.params.rpc_user,
            self.params.rpc_password,
        )

        self.client = ElectrumRpcClient(
            self.params.rpc_url, self.params.rpc_user, self.params.rpc_password
        )
        self._resources.client = self.client

        supervisor = ProcessSupervisor(
            build_command(self.exe, datadir, self.conf),
            view_stdout=self.conf.view_stdout,
            stderr_path=datadir / STDERR_LOG_NAME,
        )
        self._resources.supervisor = supervisor
        supervisor.spawn()
        supervisor.wait_ready(
            self.client.ping,
            timeout=self.conf.startup_timeout,
            interval=self.conf.poll_interval,
        )

        if self.conf.create_wallet:
            self._create_default_wallet()

    def _create_default_wallet(self) -> None:
        self.client.call("create")
        self.client.call("load_wallet", {"wallet_path": str(self.wallet_path)})
        logger.debug(f"Loaded wallet {self.wallet_path}")

    @property
    def state(self) -> InstanceState:
        supervisor = self._resources.supervisor
        if supervisor is None:
            return InstanceState.STARTING
        return supervisor.state

    @property
    def pid(self) -> int | None:
        supervisor = self._resources.supervisor
        return supervisor.pid if supervisor is not None else None

    @property
    def workdir(self) -> Path:
        """Runtime directory, removed on close()."""
        return self._resources.workdir.path

    @property
    def wallet_path(self) -> Path:
        return wallet_path(self.params.datadir, self.conf.network)

    @property
    def rpc_url(self) -> str:
        """RPC URL including the scheme, e.g. http://127.0.0.1:44842"""
        return self.params.rpc_url

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def is_running(self) -> bool:
        """Check if the daemon process is still alive."""
        supervisor = self._resources.supervisor
        return supervisor is not None and supervisor.is_alive()

    def call(self, method: str, params: Any = None) -> Any:
        """Call the RPC method with the given params."""
        return self.client.call(method, params)

    def stop(self) -> int | None:
        """Stop the daemon via RPC, waiting for its termination.

        The runtime directory is kept until close().

        Returns:
            Exit code of the process
        """
        supervisor = self._resources.supervisor
        assert supervisor is not None
        self.call("stop")
        exit_code = supervisor.wait(ElectrumdTimeouts.STOP_RPC_WAIT)
        if exit_code is None:
            logger.warning("Daemon still running after stop RPC, terminating")
        # Also reaps and moves to STOPPED when the process already exited
        return supervisor.terminate()

    def close(self) -> None:
        """Stop the daemon and remove its runtime directory.

        Idempotent and never raises.
        """
        self._finalizer()

    def __enter__(self) -> "ElectrumD":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        params = getattr(self, "params", None)
        url = params.rpc_url if params is not None else None
        return f"ElectrumD(pid={self.pid}, rpc_url={url!r}, state={self.state.value})"
