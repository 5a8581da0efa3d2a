"""Unit tests for local port allocation."""

import socket
from unittest.mock import patch

import pytest

from electrumd.adapters.net.port_allocator import allocate_ports, get_available_port
from electrumd.domain.exceptions import PortUnavailableError


class TestGetAvailablePort:
    """Tests for get_available_port."""

    def test_returned_port_can_be_bound(self) -> None:
        """The port is released before being returned."""
        port = get_available_port()

        assert 0 < port < 65536
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
            sock.bind(("127.0.0.1", port))

    def test_retries_after_bind_failure(self) -> None:
        with patch(
            "electrumd.adapters.net.port_allocator._bind_ephemeral",
            side_effect=[OSError("Address in use"), 40123],
        ) as mock_bind:
            port = get_available_port(attempts=3)

        assert port == 40123
        assert mock_bind.call_count == 2

    def test_raises_port_unavailable_after_all_attempts(self) -> None:
        with patch(
            "electrumd.adapters.net.port_allocator._bind_ephemeral",
            side_effect=OSError("Cannot assign requested address"),
        ) as mock_bind:
            with pytest.raises(PortUnavailableError, match="after 3 attempts") as exc_info:
                get_available_port(attempts=3)

        assert mock_bind.call_count == 3
        assert exc_info.value.hint is not None


class TestAllocatePorts:
    """Tests for allocate_ports."""

    def test_returns_distinct_ports(self) -> None:
        ports = allocate_ports(4)

        assert len(ports) == 4
        assert len(set(ports)) == 4

    def test_zero_ports(self) -> None:
        assert allocate_ports(0) == []

    def test_negative_count_rejected(self) -> None:
        with pytest.raises(ValueError):
            allocate_ports(-1)

    def test_duplicate_from_os_is_retried(self) -> None:
        with patch(
            "electrumd.adapters.net.port_allocator._bind_ephemeral",
            side_effect=[40001, 40001, 40002],
        ):
            assert allocate_ports(2) == [40001, 40002]

    def test_gives_up_when_os_keeps_returning_duplicates(self) -> None:
        with patch(
            "electrumd.adapters.net.port_allocator._bind_ephemeral",
            return_value=40001,
        ):
            with pytest.raises(PortUnavailableError, match="already allocated"):
                allocate_ports(2, attempts=3)
