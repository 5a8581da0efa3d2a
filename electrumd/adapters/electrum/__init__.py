"""Ephemeral Electrum daemon instances for integration tests.

This package spawns a headless Electrum daemon in regtest mode with its own
datadir and RPC port, and talks to it over JSON-RPC.

Architecture:
- layout.py: datadir layout, config file and command line
- supervisor.py: process spawn, readiness polling and termination
- rpc.py: JSON-RPC client
- instance.py: ElectrumD, the instance handle tying everything together
"""

from electrumd.adapters.electrum.instance import ElectrumD
from electrumd.adapters.electrum.rpc import ElectrumRpcClient

__all__ = ["ElectrumD", "ElectrumRpcClient"]
