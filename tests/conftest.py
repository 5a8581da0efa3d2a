"""Pytest configuration and shared fixtures."""

from collections.abc import Callable
from pathlib import Path

import pytest

from electrumd.domain.config import Conf
from tests.fixtures import write_fake_exe

pytest_plugins = ["pytester"]

ELECTRUMD_ENV_VARS = (
    "ELECTRUMD_EXE",
    "ELECTRUMD_CONFIG",
    "ELECTRUMD_VERSION",
    "ELECTRUMD_CACHE_DIR",
    "ELECTRUMD_SKIP_DOWNLOAD",
    "ELECTRUMD_SHA256",
    "TEMPDIR_ROOT",
)


@pytest.fixture(autouse=True)
def clean_electrumd_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's environment from leaking into tests."""
    for name in ELECTRUMD_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# Fake Electrum Executables
# ============================================================================


@pytest.fixture(scope="session")
def fake_exe_dir(tmp_path_factory: pytest.TempPathFactory) -> Path:
    return tmp_path_factory.mktemp("fake-electrum")


@pytest.fixture(scope="session")
def fake_exe_factory(fake_exe_dir: Path) -> Callable[..., Path]:
    """Factory creating fake Electrum executables with a given mode."""

    def make(mode: str = "serve", delay: float = 0.0) -> Path:
        return write_fake_exe(fake_exe_dir, mode=mode, delay=delay, name=f"electrum-{mode}-{delay}")

    return make


@pytest.fixture(scope="session")
def fake_electrum_exe(fake_exe_factory: Callable[..., Path]) -> Path:
    """Fake Electrum executable that serves RPC requests."""
    return fake_exe_factory()


@pytest.fixture
def fast_conf(tmp_path: Path) -> Conf:
    """Conf with short timings and runtime dirs under the test's tmp_path."""
    return Conf(tmpdir=tmp_path / "runtime", startup_timeout=15.0, poll_interval=0.05)


# Plugin fixtures (electrumd, electrumd_factory) run against the fake.


@pytest.fixture(scope="session")
def electrumd_exe(fake_electrum_exe: Path) -> Path:
    return fake_electrum_exe


@pytest.fixture
def electrumd_conf(fast_conf: Conf) -> Conf:
    return fast_conf
