"""Port interface for talking to a running daemon.

Defines the protocol the instance handle relies on, so tests can swap the
HTTP client for an in-memory fake.
"""

from typing import Any, Protocol


class RpcClient(Protocol):
    """Protocol for a request/response client bound to one daemon."""

    def call(self, method: str, params: Any = None, timeout: float | None = None) -> Any:
        """Issue a single request and return its result.

        Args:
            method: RPC method name (e.g. "version")
            params: Positional (list) or named (dict) parameters
            timeout: Per-request timeout override in seconds

        Returns:
            The decoded "result" member of the response

        Raises:
            TransportError: If the daemon cannot be reached
            ProtocolError: If the response is malformed
            RpcError: If the daemon answered with an error object
        """
        ...

    def ping(self) -> bool:
        """Return True if the daemon answers a lightweight request."""
        ...

    def close(self) -> None:
        """Release connections held by the client."""
        ...
