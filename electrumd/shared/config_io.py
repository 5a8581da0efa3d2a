"""Configuration I/O utilities for reading and writing TOML config files.

A config file holds a single [electrumd] table whose keys mirror the Conf
fields:

    [electrumd]
    network = "regtest"
    args = ["--oneserver"]
    startup_timeout = 60.0
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from electrumd.domain.config import Conf

logger = logging.getLogger(__name__)

CONFIG_ENV = "ELECTRUMD_CONFIG"
CONFIG_SECTION = "electrumd"


def get_config_path() -> Path | None:
    """Get the config file named by ELECTRUMD_CONFIG, if set."""
    value = os.environ.get(CONFIG_ENV, "")
    return Path(value) if value else None


def load_config_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data from a config file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in config file: {e}") from e


def conf_from_data(data: dict[str, Any], base: Conf | None = None) -> Conf:
    """Build a Conf from parsed TOML data.

    Args:
        data: Parsed TOML document
        base: Conf providing values for missing keys (default: Conf.default())

    Raises:
        ValueError: If the [electrumd] section is not a table or has bad values
    """
    section = data.get(CONFIG_SECTION, {})
    if not isinstance(section, dict):
        raise ValueError(f"[{CONFIG_SECTION}] must be a table")
    return Conf.from_partial(base or Conf.default(), section)


def load_conf(path: Path | None = None) -> Conf:
    """Load a Conf from path, or from ELECTRUMD_CONFIG, or defaults.

    Raises:
        FileNotFoundError: If an explicit path doesn't exist
        ValueError: If the file is malformed
    """
    path = path or get_config_path()
    if path is None:
        return Conf.default()
    conf = conf_from_data(load_config_data(path))
    logger.debug(f"Loaded config from {path}")
    return conf


def save_conf(conf: Conf, path: Path) -> None:
    """Save a Conf to a TOML file, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump({CONFIG_SECTION: conf.to_dict()}, f)
