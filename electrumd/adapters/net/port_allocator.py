"""Local TCP port allocation.

Ports are obtained by binding to port 0 and letting the OS pick a free one.
The socket is closed before the number is handed to the daemon, so there is
a small window in which another process could grab the same port. No
in-process registry is kept: uniqueness comes from the OS, which also holds
across separate test processes.
"""

import logging
import socket

from electrumd.domain.config import LOCAL_IP
from electrumd.domain.exceptions import PortUnavailableError
from electrumd.shared.timeouts import ElectrumdTimeouts

logger = logging.getLogger(__name__)


def _bind_ephemeral(host: str) -> int:
    """Bind an ephemeral port on host, release it and return its number."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        return sock.getsockname()[1]


def get_available_port(
    host: str = LOCAL_IP,
    attempts: int = ElectrumdTimeouts.PORT_ALLOCATION_ATTEMPTS,
) -> int:
    """Return a currently unused local port.

    Note there is a race between the moment the port is released here and
    the moment the caller binds it.

    Args:
        host: Interface to bind on
        attempts: Number of bind attempts before giving up

    Returns:
        Port number assigned by the OS

    Raises:
        PortUnavailableError: If every attempt failed
    """
    last_error: OSError | None = None
    for attempt in range(1, attempts + 1):
        try:
            port = _bind_ephemeral(host)
        except OSError as e:
            last_error = e
            logger.debug(f"Port allocation attempt {attempt}/{attempts} failed: {e}")
            continue
        logger.debug(f"Allocated port {port} on {host}")
        return port

    raise PortUnavailableError(
        f"Could not allocate a free port on {host} after {attempts} attempts: {last_error}",
        hint="Check that the loopback interface is up and ephemeral ports are not exhausted",
    )


def allocate_ports(
    count: int,
    host: str = LOCAL_IP,
    attempts: int = ElectrumdTimeouts.PORT_ALLOCATION_ATTEMPTS,
) -> list[int]:
    """Return count distinct free ports.

    The OS may hand back a just-released port again, so duplicates within a
    single call are retried.

    Raises:
        PortUnavailableError: If count distinct ports could not be found
    """
    if count < 0:
        raise ValueError(f"count cannot be negative, got {count}")

    ports: list[int] = []
    duplicates = 0
    while len(ports) < count:
        port = get_available_port(host, attempts)
        if port in ports:
            duplicates += 1
            if duplicates >= attempts:
                raise PortUnavailableError(
                    f"OS kept returning already allocated ports ({ports}) on {host}"
                )
            continue
        ports.append(port)
    return ports
