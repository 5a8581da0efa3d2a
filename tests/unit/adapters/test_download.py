"""Unit tests for the Electrum download cache."""

import hashlib
import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from electrumd.adapters.exe.download import (
    download_exe,
    downloaded_exe_path,
    expected_digest,
    get_cache_dir,
)
from electrumd.adapters.exe.versions import RELEASE_SHA256, download_url, resolve_version
from electrumd.domain.exceptions import ElectrumdIOError, NotFoundError, TransportError

PAYLOAD = b"#!/bin/sh\necho electrum\n"
PAYLOAD_SHA256 = hashlib.sha256(PAYLOAD).hexdigest()


def _mock_response(chunks: list[bytes] | None = None, status_error: Exception | None = None):
    """Build a streaming response usable as a context manager."""
    resp = MagicMock()
    resp.__enter__.return_value = resp
    resp.__exit__.return_value = False
    resp.iter_content.return_value = iter(chunks if chunks is not None else [PAYLOAD])
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    return resp


@pytest.fixture
def linux_x86_64():
    """Pretend to run on the one platform with a published AppImage."""
    with (
        patch("electrumd.adapters.exe.versions.platform.system", return_value="Linux"),
        patch("electrumd.adapters.exe.versions.platform.machine", return_value="x86_64"),
    ):
        yield


class TestVersions:
    """Tests for version selection and release URLs."""

    def test_default_version(self) -> None:
        assert resolve_version() == "4.5.4"

    def test_env_var_selects_version(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ELECTRUMD_VERSION", "4.1.5")

        assert resolve_version() == "4.1.5"

    def test_unsupported_version_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unsupported Electrum version"):
            resolve_version("3.3.8")

    def test_download_url(self, linux_x86_64) -> None:
        assert download_url("4.5.4") == (
            "https://download.electrum.org/4.5.4/electrum-4.5.4-x86_64.AppImage"
        )

    def test_unsupported_platform(self) -> None:
        with (
            patch("electrumd.adapters.exe.versions.platform.system", return_value="Darwin"),
            patch("electrumd.adapters.exe.versions.platform.machine", return_value="arm64"),
        ):
            with pytest.raises(NotFoundError, match="Darwin/arm64") as exc_info:
                download_url("4.5.4")

        assert "ELECTRUMD_EXE" in exc_info.value.hint


class TestCacheDir:
    """Tests for cache directory selection."""

    def test_env_override(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ELECTRUMD_CACHE_DIR", str(tmp_path))

        assert get_cache_dir() == tmp_path

    def test_xdg_cache_home(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path))

        assert get_cache_dir() == tmp_path / "electrumd"

    def test_home_fallback(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("XDG_CACHE_HOME", raising=False)

        assert get_cache_dir() == Path.home() / ".cache" / "electrumd"

    def test_downloaded_exe_path_is_versioned(self, tmp_path: Path) -> None:
        assert downloaded_exe_path("4.1.5", tmp_path) == (
            tmp_path / "electrum-4.1.5" / "electrum.AppImage"
        )


@pytest.mark.usefixtures("linux_x86_64")
class TestDownloadExe:
    """Tests for download_exe."""

    def test_cached_copy_is_reused(self, tmp_path: Path) -> None:
        target = downloaded_exe_path("4.5.4", tmp_path)
        target.parent.mkdir(parents=True)
        target.write_bytes(PAYLOAD)

        with patch("electrumd.adapters.exe.download.requests.get") as mock_get:
            assert download_exe("4.5.4", tmp_path) == target

        mock_get.assert_not_called()

    def test_downloads_and_marks_executable(self, tmp_path: Path) -> None:
        with patch(
            "electrumd.adapters.exe.download.requests.get", return_value=_mock_response()
        ) as mock_get:
            path = download_exe("4.5.4", tmp_path, expected_sha256=PAYLOAD_SHA256)

        assert path == downloaded_exe_path("4.5.4", tmp_path)
        assert path.read_bytes() == PAYLOAD
        assert os.access(path, os.X_OK)
        assert mock_get.call_args.args[0].endswith("electrum-4.5.4-x86_64.AppImage")
        assert mock_get.call_args.kwargs["stream"] is True
        # No temp files left next to the executable
        assert list(path.parent.iterdir()) == [path]

    def test_matching_sha256_accepted(self, tmp_path: Path) -> None:
        with patch(
            "electrumd.adapters.exe.download.requests.get", return_value=_mock_response()
        ):
            path = download_exe("4.5.4", tmp_path, expected_sha256=PAYLOAD_SHA256.upper())

        assert path.exists()

    def test_sha256_mismatch_leaves_nothing_behind(self, tmp_path: Path) -> None:
        with patch(
            "electrumd.adapters.exe.download.requests.get", return_value=_mock_response()
        ):
            with pytest.raises(ElectrumdIOError, match="SHA-256 mismatch"):
                download_exe("4.5.4", tmp_path, expected_sha256="00" * 32)

        target = downloaded_exe_path("4.5.4", tmp_path)
        assert not target.exists()
        assert list(target.parent.iterdir()) == []

    def test_sha256_from_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ELECTRUMD_SHA256", "ff" * 32)

        with patch(
            "electrumd.adapters.exe.download.requests.get", return_value=_mock_response()
        ):
            with pytest.raises(ElectrumdIOError, match="SHA-256 mismatch"):
                download_exe("4.5.4", tmp_path)

    def test_http_error_becomes_transport_error(self, tmp_path: Path) -> None:
        resp = _mock_response(status_error=requests.HTTPError("404 Not Found"))

        with patch("electrumd.adapters.exe.download.requests.get", return_value=resp):
            with pytest.raises(TransportError, match="404"):
                download_exe("4.5.4", tmp_path, expected_sha256=PAYLOAD_SHA256)

        assert not downloaded_exe_path("4.5.4", tmp_path).exists()

    def test_connection_error_becomes_transport_error(self, tmp_path: Path) -> None:
        with patch(
            "electrumd.adapters.exe.download.requests.get",
            side_effect=requests.ConnectionError("unreachable"),
        ):
            with pytest.raises(TransportError, match="unreachable"):
                download_exe("4.5.4", tmp_path, expected_sha256=PAYLOAD_SHA256)

    def test_skip_download_env(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ELECTRUMD_SKIP_DOWNLOAD", "1")

        with patch("electrumd.adapters.exe.download.requests.get") as mock_get:
            with pytest.raises(NotFoundError, match="ELECTRUMD_SKIP_DOWNLOAD"):
                download_exe("4.5.4", tmp_path)

        mock_get.assert_not_called()


@pytest.mark.usefixtures("linux_x86_64")
class TestDownloadVerification:
    """Downloads are always checked against a known digest."""

    def test_no_known_digest_refuses_before_downloading(self, tmp_path: Path) -> None:
        with (
            patch.dict(RELEASE_SHA256, clear=True),
            patch("electrumd.adapters.exe.download.requests.get") as mock_get,
        ):
            with pytest.raises(ElectrumdIOError, match="refusing to download") as exc_info:
                download_exe("4.5.4", tmp_path)

        mock_get.assert_not_called()
        assert "ELECTRUMD_SHA256" in exc_info.value.hint
        assert not downloaded_exe_path("4.5.4", tmp_path).exists()

    def test_default_download_checked_against_pinned_digest(self, tmp_path: Path) -> None:
        """A tampered payload is rejected without any digest being passed."""
        tampered = _mock_response([b"#!/bin/sh\necho tampered\n"])

        with (
            patch.dict(RELEASE_SHA256, {"4.5.4": PAYLOAD_SHA256}),
            patch("electrumd.adapters.exe.download.requests.get", return_value=tampered),
        ):
            with pytest.raises(ElectrumdIOError, match="SHA-256 mismatch"):
                download_exe("4.5.4", tmp_path)

        assert not downloaded_exe_path("4.5.4", tmp_path).exists()

    def test_default_download_with_pinned_digest(self, tmp_path: Path) -> None:
        with (
            patch.dict(RELEASE_SHA256, {"4.5.4": PAYLOAD_SHA256}),
            patch("electrumd.adapters.exe.download.requests.get", return_value=_mock_response()),
        ):
            path = download_exe("4.5.4", tmp_path)

        assert path.read_bytes() == PAYLOAD

    def test_env_digest_overrides_pinned(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ELECTRUMD_SHA256", PAYLOAD_SHA256)

        with (
            patch.dict(RELEASE_SHA256, {"4.5.4": "00" * 32}),
            patch("electrumd.adapters.exe.download.requests.get", return_value=_mock_response()),
        ):
            path = download_exe("4.5.4", tmp_path)

        assert path.exists()

    def test_explicit_digest_overrides_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ELECTRUMD_SHA256", "00" * 32)

        assert expected_digest("4.5.4", PAYLOAD_SHA256) == PAYLOAD_SHA256

    @pytest.mark.parametrize("digest", ["ab", "zz" * 32, PAYLOAD_SHA256 + "00"])
    def test_malformed_digest_rejected(self, digest: str) -> None:
        with pytest.raises(ElectrumdIOError, match="Invalid SHA-256 digest"):
            expected_digest("4.5.4", digest)
