"""JSON-RPC client for the Electrum daemon.

Electrum serves JSON-RPC 2.0 over HTTP POST, protected by basic auth with the
rpcuser/rpcpassword pair from its config file. This module only contributes
transport and envelope handling; method semantics belong to Electrum.
"""

import itertools
import logging
import threading
from typing import Any

import requests

from electrumd.domain.exceptions import ProtocolError, RpcError, TransportError
from electrumd.shared.timeouts import ElectrumdTimeouts

logger = logging.getLogger(__name__)

READINESS_METHOD = "version"


def build_request(method: str, params: Any, request_id: int) -> dict[str, Any]:
    """Build a JSON-RPC 2.0 request envelope."""
    if params is None:
        params = []
    if not isinstance(params, (list, tuple, dict)):
        raise TypeError(f"params must be a list, tuple or dict, got {type(params).__name__}")
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "method": method,
        "params": list(params) if isinstance(params, tuple) else params,
    }


def parse_response(resp: requests.Response, method: str, request_id: int) -> Any:
    """Decode a JSON-RPC response and return its result.

    Raises:
        ProtocolError: If the body is not a well-formed JSON-RPC response
        RpcError: If the body carries an error object
    """
    try:
        data = resp.json()
    except ValueError as e:
        raise ProtocolError(
            f"Invalid JSON in response to {method!r} (HTTP {resp.status_code}): {e}"
        ) from e

    if not isinstance(data, dict):
        raise ProtocolError(f"Response to {method!r} must be a JSON object")

    error = data.get("error")
    if error is not None:
        if isinstance(error, dict):
            raise RpcError(
                str(error.get("message", "Unknown error")),
                code=error.get("code"),
                method=method,
            )
        raise RpcError(str(error), method=method)

    if "result" not in data:
        raise ProtocolError(f"Response to {method!r} missing 'result' field")

    if data.get("id") != request_id:
        raise ProtocolError(
            f"Response id {data.get('id')!r} does not match request id {request_id}"
        )

    return data["result"]


class ElectrumRpcClient:
    """Thin JSON-RPC client bound to one Electrum daemon.

    Implements the RpcClient protocol. Safe to share between threads.
    """

    def __init__(
        self,
        url: str,
        user: str,
        password: str,
        timeout: float = ElectrumdTimeouts.RPC_REQUEST,
    ):
        """Initialize the client.

        Args:
            url: RPC URL, e.g. http://127.0.0.1:44842
            user: Basic-auth user
            password: Basic-auth password
            timeout: Default per-request timeout in seconds
        """
        self.url = url
        self.timeout = timeout
        self._session = requests.Session()
        self._session.auth = (user, password)
        self._ids = itertools.count(1)
        self._id_lock = threading.Lock()

    def _next_id(self) -> int:
        with self._id_lock:
            return next(self._ids)

    def call(self, method: str, params: Any = None, timeout: float | None = None) -> Any:
        """Call an RPC method and return its result.

        Args:
            method: Method name
            params: List/tuple of positional or dict of named parameters
            timeout: Override of the default request timeout

        Returns:
            The decoded result

        Raises:
            TransportError: Connection refused, reset or timed out
            ProtocolError: Malformed response
            RpcError: Daemon returned an error object
        """
        request_id = self._next_id()
        payload = build_request(method, params, request_id)
        logger.debug(f"RPC -> {method} (id={request_id})")
        try:
            resp = self._session.post(
                self.url,
                json=payload,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.Timeout as e:
            raise TransportError(f"Request {method!r} to {self.url} timed out: {e}") from e
        except requests.ConnectionError as e:
            raise TransportError(f"Could not connect to {self.url}: {e}") from e
        except requests.RequestException as e:
            raise TransportError(f"Request {method!r} to {self.url} failed: {e}") from e

        return parse_response(resp, method, request_id)

    def ping(self) -> bool:
        """Return True if the daemon answers a version request."""
        try:
            self.call(READINESS_METHOD, timeout=ElectrumdTimeouts.HEALTH_CHECK)
            return True
        except (TransportError, ProtocolError, RpcError) as e:
            logger.debug(f"Readiness probe failed: {e}")
            return False

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> "ElectrumRpcClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"ElectrumRpcClient({self.url!r})"
