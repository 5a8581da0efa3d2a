"""Locate the Electrum executable.

Candidates are tried in order and the first existing executable file wins:

1. An explicit path given by the caller
2. The ELECTRUMD_EXE environment variable
3. A previously downloaded copy in the cache (see download.py)
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from electrumd.adapters.exe.download import download_exe, downloaded_exe_path
from electrumd.domain.exceptions import NotFoundError

logger = logging.getLogger(__name__)

EXE_ENV = "ELECTRUMD_EXE"


def is_executable_file(path: Path) -> bool:
    """Check that path is a regular file the current user may execute."""
    return path.is_file() and os.access(path, os.X_OK)


def validate_exe(path: str | os.PathLike[str]) -> Path:
    """Check a single explicit executable path.

    Raises:
        NotFoundError: If path does not exist or is not executable
    """
    candidate = Path(path).expanduser()
    if not candidate.exists():
        raise NotFoundError(f"Electrum executable not found: {candidate}")
    if not is_executable_file(candidate):
        raise NotFoundError(
            f"Electrum executable is not an executable file: {candidate}",
            hint=f"Run 'chmod +x {candidate}'",
        )
    return candidate


def _candidates(
    explicit: str | os.PathLike[str] | None,
    env: Mapping[str, str],
    cache_dir: Path | None,
    version: str | None,
) -> list[tuple[str, Path]]:
    found: list[tuple[str, Path]] = []
    if explicit:
        found.append(("explicit path", Path(explicit).expanduser()))
    env_value = env.get(EXE_ENV)
    if env_value:
        found.append((f"${EXE_ENV}", Path(env_value).expanduser()))
    try:
        found.append(("download cache", downloaded_exe_path(version, cache_dir)))
    except ValueError as e:
        logger.debug(f"Skipping download cache: {e}")
    return found


def resolve_exe_path(
    explicit: str | os.PathLike[str] | None = None,
    *,
    env: Mapping[str, str] | None = None,
    cache_dir: Path | None = None,
    version: str | None = None,
    download: bool = False,
) -> Path:
    """Resolve the Electrum executable.

    Args:
        explicit: Path given by the caller, tried first
        env: Environment to read ELECTRUMD_EXE from (default: os.environ)
        cache_dir: Download cache root (default: download.get_cache_dir())
        version: Electrum version of the cached copy
        download: Download the executable if no candidate is usable

    Returns:
        Path to an existing executable file

    Raises:
        NotFoundError: If no candidate resolves to an executable file
    """
    env = os.environ if env is None else env
    tried: list[str] = []
    for source, candidate in _candidates(explicit, env, cache_dir, version):
        if is_executable_file(candidate):
            logger.debug(f"Using Electrum executable from {source}: {candidate}")
            return candidate
        reason = "not executable" if candidate.exists() else "missing"
        logger.debug(f"Skipping {source} {candidate} ({reason})")
        tried.append(f"{source}: {candidate} ({reason})")

    if download:
        return download_exe(version, cache_dir)

    detail = "; ".join(tried) if tried else "no candidates"
    raise NotFoundError(
        f"No Electrum executable found ({detail})",
        hint=f"Set {EXE_ENV} or run 'electrumd download'",
    )


def exe_path() -> Path:
    """Executable from ELECTRUMD_EXE or the download cache."""
    return resolve_exe_path()
