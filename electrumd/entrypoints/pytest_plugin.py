"""pytest fixtures for Electrum daemon instances.

Registered through the pytest11 entry point, so installing electrumd makes
these fixtures available to any test suite:

    def test_version(electrumd):
        assert electrumd.call("version")

Instances are closed at fixture teardown even if the test failed, so no
daemon process or runtime directory outlives its test.
"""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from electrumd.adapters.electrum.instance import ElectrumD
from electrumd.adapters.exe.locator import resolve_exe_path
from electrumd.domain.config import Conf
from electrumd.domain.exceptions import NotFoundError
from electrumd.shared.config_io import load_conf


@pytest.fixture(scope="session")
def electrumd_exe() -> Path:
    """Electrum executable from ELECTRUMD_EXE or the download cache.

    Tests depending on it are skipped when no executable is available.
    """
    try:
        return resolve_exe_path()
    except NotFoundError as e:
        pytest.skip(f"Electrum executable not available: {e.message}")


@pytest.fixture
def electrumd_conf() -> Conf:
    """Launch configuration, read from ELECTRUMD_CONFIG when set."""
    return load_conf()


@pytest.fixture
def electrumd(electrumd_exe: Path, electrumd_conf: Conf) -> Iterator[ElectrumD]:
    """A ready Electrum daemon, torn down after the test."""
    with ElectrumD(electrumd_exe, electrumd_conf) as instance:
        yield instance


@pytest.fixture
def electrumd_factory(
    electrumd_exe: Path, electrumd_conf: Conf
) -> Iterator[Callable[..., ElectrumD]]:
    """Factory creating any number of daemons, all torn down after the test.

    Example:
        def test_two_wallets(electrumd_factory):
            alice = electrumd_factory()
            bob = electrumd_factory(Conf(create_wallet=False))
    """
    instances: list[ElectrumD] = []

    def make(conf: Conf | None = None, exe: Path | None = None) -> ElectrumD:
        instance = ElectrumD(exe or electrumd_exe, conf or electrumd_conf)
        instances.append(instance)
        return instance

    yield make

    for instance in instances:
        instance.close()
