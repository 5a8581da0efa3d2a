"""Per-instance runtime directories.

Every daemon instance gets its own freshly created directory that holds the
Electrum datadir, its config file and the captured stderr log. The directory
is removed when the owning instance is torn down.
"""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from electrumd.domain.exceptions import ElectrumdIOError

logger = logging.getLogger(__name__)

TEMPDIR_ROOT_ENV = "TEMPDIR_ROOT"
WORKDIR_PREFIX = "electrumd-"


def resolve_tmpdir_root(root: Path | None = None) -> Path | None:
    """Pick the root under which runtime directories are created.

    Priority: explicit root, then the TEMPDIR_ROOT env var, then None (the
    OS default temp dir).
    """
    if root is not None:
        return Path(root)
    env_root = os.environ.get(TEMPDIR_ROOT_ENV)
    if env_root:
        return Path(env_root)
    return None


class RuntimeDir:
    """A uniquely named temporary directory owned by one daemon instance.

    Names come from tempfile.mkdtemp, which is safe to call concurrently from
    threads and processes. Use as a context manager or call cleanup()
    explicitly; cleanup is idempotent and never raises.
    """

    def __init__(self, root: Path | None = None, prefix: str = WORKDIR_PREFIX):
        """Create the directory.

        Args:
            root: Parent directory (default: TEMPDIR_ROOT or OS temp dir)
            prefix: Directory name prefix

        Raises:
            ElectrumdIOError: If the directory cannot be created
        """
        parent = resolve_tmpdir_root(root)
        try:
            if parent is not None:
                parent.mkdir(parents=True, exist_ok=True)
            self._path = Path(tempfile.mkdtemp(prefix=prefix, dir=parent))
        except OSError as e:
            raise ElectrumdIOError(
                f"Failed to create runtime directory under {parent or tempfile.gettempdir()}: {e}",
                hint=f"Check permissions of the directory or unset {TEMPDIR_ROOT_ENV}",
            ) from e
        self._removed = False
        logger.debug(f"Created runtime directory {self._path}")

    @property
    def path(self) -> Path:
        return self._path

    @property
    def exists(self) -> bool:
        return self._path.exists()

    def cleanup(self) -> bool:
        """Remove the directory and everything in it.

        Failures are logged, never raised, so a broken cleanup does not mask
        the error that caused the teardown.

        Returns:
            True if the directory is gone afterwards
        """
        if self._removed:
            return True
        try:
            shutil.rmtree(self._path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Failed to remove runtime directory {self._path}: {e}")
            return False
        self._removed = True
        logger.debug(f"Removed runtime directory {self._path}")
        return True

    def __enter__(self) -> "RuntimeDir":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def __repr__(self) -> str:
        return f"RuntimeDir({str(self._path)!r})"
