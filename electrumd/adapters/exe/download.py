"""Download and cache Electrum AppImage releases.

Downloads go to a per-user cache directory so that every test run after the
first one reuses the same executable:

- $ELECTRUMD_CACHE_DIR if set
- $XDG_CACHE_HOME/electrumd
- ~/.cache/electrumd
"""

import hashlib
import logging
import os
import re
import tempfile
from pathlib import Path

import requests

from electrumd.adapters.exe.versions import download_url, release_sha256, resolve_version
from electrumd.domain.exceptions import ElectrumdIOError, NotFoundError, TransportError

logger = logging.getLogger(__name__)

CACHE_DIR_ENV = "ELECTRUMD_CACHE_DIR"
SKIP_DOWNLOAD_ENV = "ELECTRUMD_SKIP_DOWNLOAD"
SHA256_ENV = "ELECTRUMD_SHA256"
EXE_FILENAME = "electrum.AppImage"
DOWNLOAD_TIMEOUT = 60.0
CHUNK_SIZE = 1 << 20
SHA256_HEX = re.compile(r"[0-9a-f]{64}")


def get_cache_dir() -> Path:
    """Get the directory where downloaded executables are cached.

    Returns:
        Path to the cache directory (may not exist)
    """
    override = os.environ.get(CACHE_DIR_ENV, "")
    if override:
        return Path(override)
    xdg_cache = os.environ.get("XDG_CACHE_HOME", "")
    if xdg_cache:
        return Path(xdg_cache) / "electrumd"
    return Path.home() / ".cache" / "electrumd"


def downloaded_exe_path(version: str | None = None, cache_dir: Path | None = None) -> Path:
    """Path where the given version is (or would be) cached.

    Existence is not checked.
    """
    version = resolve_version(version)
    root = cache_dir or get_cache_dir()
    return root / f"electrum-{version}" / EXE_FILENAME


def _sha256_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as f:
        for block in iter(lambda: f.read(CHUNK_SIZE), b""):
            digest.update(block)
    return digest.hexdigest()


def expected_digest(version: str, expected_sha256: str | None = None) -> str:
    """Digest the download of version must match.

    Priority: explicit digest, then ELECTRUMD_SHA256, then the pinned
    release digest.

    Raises:
        ElectrumdIOError: If no digest is known or it is not a SHA-256 hex digest
    """
    digest = expected_sha256 or os.environ.get(SHA256_ENV) or release_sha256(version) or ""
    digest = digest.strip().lower()
    if not digest:
        raise ElectrumdIOError(
            f"No SHA-256 digest known for Electrum {version}, refusing to download it unverified",
            hint=f"Pass --sha256 or set {SHA256_ENV} to the digest from the release's SHA256SUMS",
        )
    if not SHA256_HEX.fullmatch(digest):
        raise ElectrumdIOError(f"Invalid SHA-256 digest for Electrum {version}: {digest!r}")
    return digest


def download_exe(
    version: str | None = None,
    cache_dir: Path | None = None,
    expected_sha256: str | None = None,
    timeout: float = DOWNLOAD_TIMEOUT,
) -> Path:
    """Download the Electrum AppImage into the cache, if not already there.

    The file is streamed to a temporary name next to its final location and
    renamed into place once complete (and verified), so a concurrent or
    interrupted download never leaves a truncated executable behind.

    Args:
        version: Electrum version (default: ELECTRUMD_VERSION or DEFAULT_VERSION)
        cache_dir: Cache root (default: get_cache_dir())
        expected_sha256: Hex digest to verify against (default: ELECTRUMD_SHA256,
            then the pinned release digest)
        timeout: HTTP connect/read timeout in seconds

    Returns:
        Path to the executable

    Raises:
        NotFoundError: If downloads are disabled or the platform is unsupported
        TransportError: If the download fails
        ElectrumdIOError: If no digest is known, the digest doesn't match or
            the file can't be written
    """
    version = resolve_version(version)
    target = downloaded_exe_path(version, cache_dir)
    if target.exists():
        logger.debug(f"Using cached Electrum {version} at {target}")
        return target

    if os.environ.get(SKIP_DOWNLOAD_ENV):
        raise NotFoundError(
            f"Electrum {version} is not cached at {target} and {SKIP_DOWNLOAD_ENV} is set",
            hint=f"Unset {SKIP_DOWNLOAD_ENV} or set ELECTRUMD_EXE",
        )

    url = download_url(version)
    expected = expected_digest(version, expected_sha256)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ElectrumdIOError(f"Failed to create cache directory {target.parent}: {e}") from e

    logger.info(f"Downloading Electrum {version} from {url}")
    fd, tmp_name = tempfile.mkstemp(prefix=".download-", dir=target.parent)
    tmp_path = Path(tmp_name)
    try:
        try:
            with os.fdopen(fd, "wb") as out, requests.get(url, stream=True, timeout=timeout) as resp:
                resp.raise_for_status()
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    out.write(chunk)
        except requests.RequestException as e:
            raise TransportError(f"Failed to download {url}: {e}") from e
        except OSError as e:
            raise ElectrumdIOError(f"Failed to write {tmp_path}: {e}") from e

        actual = _sha256_file(tmp_path)
        if actual != expected:
            raise ElectrumdIOError(f"SHA-256 mismatch for {url}: expected {expected}, got {actual}")

        try:
            tmp_path.chmod(0o744)
            os.replace(tmp_path, target)
        except OSError as e:
            raise ElectrumdIOError(f"Failed to install {target}: {e}") from e
    finally:
        tmp_path.unlink(missing_ok=True)

    logger.info(f"Electrum {version} saved to {target}")
    return target
