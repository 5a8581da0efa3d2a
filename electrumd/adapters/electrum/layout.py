"""On-disk layout and command line of an Electrum daemon instance.

Electrum keeps per-network state in <datadir>/<network>/: the JSON config
file and the wallets/ directory. The config file is written before spawn so
the daemon picks up the RPC port and credentials on startup.
"""

import json
import logging
import secrets
import string
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from electrumd.domain.config import Conf
from electrumd.domain.exceptions import ElectrumdIOError

logger = logging.getLogger(__name__)

PASSWORD_ALPHABET = string.ascii_letters + string.digits
PASSWORD_LENGTH = 15
DEFAULT_WALLET_NAME = "default_wallet"


def rand_string(length: int = PASSWORD_LENGTH) -> str:
    """Random alphanumeric string, used as the RPC password."""
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(length))


def network_dir(datadir: Path, network: str) -> Path:
    return datadir / network


def config_path(datadir: Path, network: str) -> Path:
    return network_dir(datadir, network) / "config"


def wallet_path(datadir: Path, network: str, name: str = DEFAULT_WALLET_NAME) -> Path:
    return network_dir(datadir, network) / "wallets" / name


def build_config(
    rpc_port: int,
    rpc_user: str,
    rpc_password: str,
    extra: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Contents of the Electrum config file.

    Keys in extra are merged last but may not override the RPC settings the
    client depends on.
    """
    config: dict[str, Any] = dict(extra or {})
    config.update(
        {
            "rpcport": rpc_port,
            "rpcuser": rpc_user,
            "rpcpassword": rpc_password,
            "log_to_file": True,
        }
    )
    return config


def prepare_datadir(
    datadir: Path,
    conf: Conf,
    rpc_port: int,
    rpc_user: str,
    rpc_password: str,
) -> Path:
    """Create the network and wallets directories and write the config file.

    Returns:
        Path of the written config file

    Raises:
        ElectrumdIOError: If any directory or the file cannot be written
    """
    path = config_path(datadir, conf.network)
    config = build_config(rpc_port, rpc_user, rpc_password, conf.extra_config)
    try:
        wallet_path(datadir, conf.network).parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(config), encoding="utf-8")
    except OSError as e:
        raise ElectrumdIOError(f"Failed to write Electrum config {path}: {e}") from e
    logger.debug(f"Wrote Electrum config {path} (rpcport={rpc_port})")
    return path


def build_command(exe: Path, datadir: Path, conf: Conf) -> list[str]:
    """Command line used to spawn the daemon."""
    return [
        str(exe),
        "daemon",
        "--dir",
        str(datadir),
        f"--{conf.network}",
        *conf.args,
    ]
