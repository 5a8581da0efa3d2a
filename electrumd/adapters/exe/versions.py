"""Electrum releases that can be downloaded automatically."""

import os
import platform

from electrumd.domain.exceptions import NotFoundError

SUPPORTED_VERSIONS = ("4.1.5", "4.5.4")
DEFAULT_VERSION = "4.5.4"
VERSION_ENV = "ELECTRUMD_VERSION"
DOWNLOAD_BASE_URL = "https://download.electrum.org"

# AppImage digests from each release's SHA256SUMS, used when no digest is
# given explicitly. Versions missing here download only with an explicit one.
# TODO: pin the 4.1.5 and 4.5.4 AppImage digests from download.electrum.org.
RELEASE_SHA256: dict[str, str] = {}


def resolve_version(version: str | None = None) -> str:
    """Return the Electrum version to use.

    Priority: explicit version, then ELECTRUMD_VERSION, then DEFAULT_VERSION.

    Raises:
        ValueError: If the version is not one of SUPPORTED_VERSIONS
    """
    resolved = version or os.environ.get(VERSION_ENV) or DEFAULT_VERSION
    if resolved not in SUPPORTED_VERSIONS:
        raise ValueError(
            f"Unsupported Electrum version {resolved!r}, "
            f"expected one of: {', '.join(SUPPORTED_VERSIONS)}"
        )
    return resolved


def download_filename(version: str) -> str:
    """Name of the release artifact for the current platform.

    Only the Linux x86_64 AppImage is published in a form that runs headless
    without installation.

    Raises:
        NotFoundError: On any other platform
    """
    system = platform.system()
    machine = platform.machine().lower()
    if system == "Linux" and machine in ("x86_64", "amd64"):
        return f"electrum-{version}-x86_64.AppImage"
    raise NotFoundError(
        f"No downloadable Electrum build for {system}/{machine}",
        hint="Install Electrum manually and point ELECTRUMD_EXE at the executable",
    )


def download_url(version: str) -> str:
    return f"{DOWNLOAD_BASE_URL}/{version}/{download_filename(version)}"


def release_sha256(version: str) -> str | None:
    """Pinned AppImage digest of a release, if known."""
    return RELEASE_SHA256.get(version)
