"""Centralized timeout configuration for Electrum daemon operations.

All timing values used while starting, talking to and stopping a daemon
instance are defined here so they can be tuned in one place (slow CI runners,
ramdisk-backed workdirs, etc).
"""


class ElectrumdTimeouts:
    """Centralized timeout configuration for daemon operations.

    All values are in seconds unless otherwise noted.

    Groups:
        READY_*: Waiting for the daemon to answer RPC calls after spawn
        RPC_*: Client request timeouts
        SIGTERM_*: Graceful shutdown timeouts
        SIGKILL_*: Force kill timeouts
        PORT_*: Port allocation
    """

    # =========================================================================
    # Daemon Ready Wait Timeouts
    # =========================================================================

    READY_WAIT_DEFAULT: float = 30.0
    """Default time to wait for a freshly spawned daemon to answer `version`.

    The Electrum AppImage unpacks itself on every start, which dominates
    startup time. On a warm page cache this takes a few seconds; cold CI
    runners can need considerably more.
    """

    READY_CHECK_INTERVAL: float = 0.25
    """Interval between readiness checks while the daemon is starting."""

    # =========================================================================
    # RPC Timeouts
    # =========================================================================

    RPC_REQUEST: float = 5.0
    """Timeout for a single JSON-RPC request (connect + response)."""

    HEALTH_CHECK: float = 2.0
    """Timeout for readiness probes.

    Shorter than RPC_REQUEST so a probe against a half-started daemon does
    not eat a large share of the startup budget.
    """

    # =========================================================================
    # Shutdown Timeouts
    # =========================================================================

    STOP_RPC_WAIT: float = 10.0
    """Time to wait for the process to exit after a `stop` RPC call."""

    SIGTERM_WAIT: float = 5.0
    """Time to wait for graceful shutdown after SIGTERM.

    If the daemon doesn't stop within this time, SIGKILL is sent.
    """

    SIGKILL_WAIT: float = 2.5
    """Time to wait after sending SIGKILL.

    SIGKILL cannot be caught, so this only gives the OS time to tear the
    process down before it is reaped.
    """

    DEATH_CHECK_INTERVAL: float = 0.1
    """Interval between checks when waiting for process death."""

    # =========================================================================
    # Port Allocation
    # =========================================================================

    PORT_ALLOCATION_ATTEMPTS: int = 5
    """Number of bind attempts before giving up with PortUnavailableError."""
