"""
Tests for connectivity module.

Tests the internet connectivity checking functionality including:
- Successful connection scenarios
- Connection failures
- Timeout handling
- Fallback mechanism to multiple DNS servers
- The visibility away check built on top of it
"""

import pytest
import socket
from unittest.mock import patch, Mock
from pathlib import Path

# Add parent directory to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent))

from proctor.connectivity import DNS_HOSTS, check_internet_connectivity, network_away_check


class TestConnectivitySuccess:
    """Test successful connectivity scenarios."""

    @patch('socket.create_connection')
    def test_check_connectivity_cloudflare_success(self, mock_connection):
        """Test successful connection to Cloudflare DNS."""
        mock_connection.return_value = Mock()

        result = check_internet_connectivity()

        assert result is True
        mock_connection.assert_called_once_with(("1.1.1.1", 53), timeout=2.0)

    @patch('socket.create_connection')
    def test_connection_is_closed(self, mock_connection):
        """Test that the connectivity check socket is not left open."""
        connection = Mock()
        mock_connection.return_value = connection

        check_internet_connectivity()

        connection.close.assert_called_once()

    @patch('socket.create_connection')
    def test_check_connectivity_with_custom_timeout(self, mock_connection):
        """Test connectivity check with custom timeout."""
        mock_connection.return_value = Mock()

        result = check_internet_connectivity(timeout=5.0)

        assert result is True
        mock_connection.assert_called_once_with(("1.1.1.1", 53), timeout=5.0)

    @patch('socket.create_connection')
    def test_custom_hosts(self, mock_connection):
        """Test connectivity check against caller-supplied hosts."""
        mock_connection.return_value = Mock()

        assert check_internet_connectivity(hosts=[("10.0.0.1", 80)]) is True
        mock_connection.assert_called_once_with(("10.0.0.1", 80), timeout=2.0)


class TestConnectivityFallback:
    """Test fallback mechanism to alternative DNS servers."""

    @patch('socket.create_connection')
    def test_fallback_to_google_dns(self, mock_connection):
        """Test fallback to Google DNS when Cloudflare fails."""
        mock_connection.side_effect = [
            OSError("Connection failed"),
            Mock()
        ]

        result = check_internet_connectivity()

        assert result is True
        assert mock_connection.call_count == 2
        calls = mock_connection.call_args_list
        assert calls[0][0] == (("1.1.1.1", 53),)
        assert calls[1][0] == (("8.8.8.8", 53),)

    @patch('socket.create_connection')
    def test_fallback_to_last_host(self, mock_connection):
        """Test that every host is tried before giving up."""
        mock_connection.side_effect = [
            OSError("Connection failed"),
            socket.timeout("timed out"),
            OSError("Connection failed"),
            Mock()
        ]

        assert check_internet_connectivity() is True
        assert mock_connection.call_args_list[-1][0] == (("9.9.9.9", 53),)


class TestConnectivityFailure:
    """Test failure scenarios."""

    @patch('socket.create_connection')
    def test_all_hosts_fail(self, mock_connection):
        """Test that no connectivity is reported when every host fails."""
        mock_connection.side_effect = OSError("Network unreachable")

        result = check_internet_connectivity()

        assert result is False
        assert mock_connection.call_count == len(DNS_HOSTS)

    @patch('socket.create_connection')
    def test_timeouts(self, mock_connection):
        """Test that timeouts count as failures."""
        mock_connection.side_effect = socket.timeout("timed out")

        assert check_internet_connectivity(timeout=0.1) is False


class TestNetworkProbe:
    """Test the visibility away check."""

    @patch('proctor.connectivity.check_internet_connectivity')
    def test_online_means_away(self, mock_check):
        mock_check.return_value = True

        away_check = network_away_check(timeout=1.5)

        assert away_check() is True
        mock_check.assert_called_once_with(timeout=1.5)

    @patch('proctor.connectivity.check_internet_connectivity')
    def test_offline_means_present(self, mock_check):
        mock_check.return_value = False

        assert network_away_check()() is False
