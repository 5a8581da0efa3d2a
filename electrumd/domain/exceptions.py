"""Domain exceptions for electrumd.

Every failure surfaced by the library is an ElectrumdError subclass, so test
suites can catch the whole family with a single except clause. Setup errors
are raised after partially acquired resources have been released; teardown
errors are never raised (they are logged instead).
"""


class ElectrumdError(Exception):
    """Base exception for all electrumd errors.

    Attributes:
        message: User-facing error message.
        hint: Optional actionable suggestion.
    """

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class NotFoundError(ElectrumdError):
    """Raised when no usable Electrum executable can be resolved."""

    pass


class ElectrumdIOError(ElectrumdError):
    """Raised when a filesystem operation (workdir, config, download) fails."""

    pass


class PortUnavailableError(ElectrumdError):
    """Raised when no free local TCP port could be allocated."""

    pass


class StartupTimeoutError(ElectrumdError):
    """Raised when the daemon did not become ready within the startup timeout.

    Attributes:
        pid: PID of the process that was terminated, if it was spawned.
        timeout: The timeout that elapsed, in seconds.
    """

    def __init__(
        self,
        message: str,
        pid: int | None = None,
        timeout: float | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.pid = pid
        self.timeout = timeout


class ProcessExitedError(ElectrumdError):
    """Raised when the daemon process died before becoming ready.

    Attributes:
        returncode: Exit code of the process.
        stderr: Tail of the captured stderr output (may be empty).
    """

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.returncode = returncode
        self.stderr = stderr


class TransportError(ElectrumdError):
    """Raised when the daemon cannot be reached (refused, timed out, reset)."""

    pass


class ProtocolError(ElectrumdError):
    """Raised when the daemon answers with a malformed response."""

    pass


class RpcError(ElectrumdError):
    """Raised when the daemon answers with a JSON-RPC error object.

    Attributes:
        code: JSON-RPC error code.
        method: Method that was called.
    """

    def __init__(self, message: str, code: int | None = None, method: str | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.method = method
