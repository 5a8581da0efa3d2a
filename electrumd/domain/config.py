"""Config domain models for electrumd.

These models describe how a single Electrum daemon instance is launched
(Conf) and how to reach it once it is running (ConnectParams).
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any

from electrumd.shared.timeouts import ElectrumdTimeouts

DEFAULT_NETWORK = "regtest"
RPC_USER = "electrumd"
LOCAL_IP = "127.0.0.1"


class InstanceState(Enum):
    """Lifecycle states of a supervised daemon process."""

    STARTING = "starting"
    READY = "ready"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True)
class Conf:
    """Launch configuration for an Electrum daemon instance.

    Attributes:
        args: Extra Electrum command line arguments, e.g. ("--oneserver",)
        view_stdout: If True, daemon stdout is inherited instead of discarded
        network: Network name without dashes. Passed as --<network> and used
                 to locate the per-network config directory.
        tmpdir: Root for the runtime directory. None falls back to the
                TEMPDIR_ROOT env var, then the OS temp dir. Pointing this at a
                ramdisk makes instances start faster.
        startup_timeout: Seconds to wait for the daemon to answer RPC calls
        poll_interval: Seconds between readiness checks
        create_wallet: Create and load a default wallet once ready
        extra_config: Additional keys merged into the Electrum config file

    Raises:
        ValueError: If a field has the wrong type, timing values are not
            positive or network is empty.
    """

    args: tuple[str, ...] = ()
    view_stdout: bool = False
    network: str = DEFAULT_NETWORK
    tmpdir: Path | None = None
    startup_timeout: float = ElectrumdTimeouts.READY_WAIT_DEFAULT
    poll_interval: float = ElectrumdTimeouts.READY_CHECK_INTERVAL
    create_wallet: bool = True
    # Read-only copy; not hashed so that Conf stays usable as a dict key
    extra_config: Mapping[str, Any] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        """Validate and normalize conf after initialization."""
        if not isinstance(self.network, str):
            raise ValueError(f"network must be a string, got {type(self.network).__name__}")
        if not self.network or self.network.startswith("-"):
            raise ValueError(f"network must be a bare name like 'regtest', got {self.network!r}")
        for name in ("startup_timeout", "poll_interval"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
        if self.startup_timeout <= 0:
            raise ValueError(f"startup_timeout must be positive, got {self.startup_timeout}")
        if self.poll_interval <= 0:
            raise ValueError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.poll_interval > self.startup_timeout:
            raise ValueError(
                f"poll_interval ({self.poll_interval}) must not exceed "
                f"startup_timeout ({self.startup_timeout})"
            )
        for name in ("view_stdout", "create_wallet"):
            if not isinstance(getattr(self, name), bool):
                raise ValueError(f"{name} must be true or false, got {getattr(self, name)!r}")

        # A bare string would otherwise be split into single characters
        if not isinstance(self.args, (list, tuple)):
            raise ValueError(f"args must be a list of strings, got {self.args!r}")
        # Accept lists from TOML/CLI callers but store an immutable tuple
        if not isinstance(self.args, tuple):
            object.__setattr__(self, "args", tuple(self.args))
        for arg in self.args:
            if not isinstance(arg, str):
                raise ValueError(f"args must be a list of strings, got {arg!r}")
            if " " in arg:
                raise ValueError(f"args must not contain spaces, got {arg!r}")

        if self.tmpdir is not None:
            if not isinstance(self.tmpdir, (str, os.PathLike)):
                raise ValueError(f"tmpdir must be a path, got {self.tmpdir!r}")
            if not isinstance(self.tmpdir, Path):
                object.__setattr__(self, "tmpdir", Path(self.tmpdir))

        if not isinstance(self.extra_config, Mapping):
            raise ValueError(f"extra_config must be a table, got {self.extra_config!r}")
        object.__setattr__(self, "extra_config", MappingProxyType(dict(self.extra_config)))

    @classmethod
    def default(cls) -> "Conf":
        """Create a Conf with all default values."""
        return cls()

    @classmethod
    def from_partial(cls, base: "Conf", partial: dict[str, Any]) -> "Conf":
        """Create a new Conf by overriding fields of base.

        Unknown keys are rejected so that typos in config files surface early.

        Args:
            base: Conf to start from
            partial: Field overrides (e.g. the [electrumd] table of a TOML file)

        Returns:
            New validated Conf

        Raises:
            ValueError: If partial contains unknown keys or invalid values
        """
        known = {f.name for f in fields(cls)}
        unknown = set(partial) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")
        return replace(base, **partial)

    def to_dict(self) -> dict[str, Any]:
        """Serializable representation (used when saving config files)."""
        data: dict[str, Any] = {
            "args": list(self.args),
            "view_stdout": self.view_stdout,
            "network": self.network,
            "startup_timeout": self.startup_timeout,
            "poll_interval": self.poll_interval,
            "create_wallet": self.create_wallet,
        }
        if self.tmpdir is not None:
            data["tmpdir"] = str(self.tmpdir)
        if self.extra_config:
            data["extra_config"] = dict(self.extra_config)
        return data


@dataclass(frozen=True)
class ConnectParams:
    """Everything needed to connect to a running daemon.

    Attributes:
        datadir: Path to the daemon data directory
        rpc_port: Port the JSON-RPC server listens on
        rpc_user: RPC basic-auth user
        rpc_password: RPC basic-auth password
        rpc_host: Host the RPC server listens on
    """

    datadir: Path
    rpc_port: int
    rpc_user: str
    rpc_password: str = field(repr=False)
    rpc_host: str = LOCAL_IP

    @property
    def rpc_socket(self) -> tuple[str, int]:
        """Host/port pair of the RPC server."""
        return (self.rpc_host, self.rpc_port)

    @property
    def rpc_url(self) -> str:
        """RPC URL including the scheme, e.g. http://127.0.0.1:44842"""
        return f"http://{self.rpc_host}:{self.rpc_port}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "datadir": str(self.datadir),
            "rpc_url": self.rpc_url,
            "rpc_host": self.rpc_host,
            "rpc_port": self.rpc_port,
            "rpc_user": self.rpc_user,
            "rpc_password": self.rpc_password,
        }
