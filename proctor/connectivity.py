"""
Network reachability check.

For offline exams, a machine that comes online is treated like a window
that lost focus: the away check reports "away" and the violation monitor counts it.
"""

import socket
from typing import Callable, Sequence, Tuple

# Public DNS resolvers tried in order: Cloudflare, Google, OpenDNS, Quad9
DNS_HOSTS: Tuple[Tuple[str, int], ...] = (
    ("1.1.1.1", 53),
    ("8.8.8.8", 53),
    ("208.67.222.222", 53),
    ("9.9.9.9", 53),
)


def check_internet_connectivity(timeout: float = 2.0, hosts: Sequence[Tuple[str, int]] = DNS_HOSTS) -> bool:
    """
    Check if the system has internet connectivity by attempting to connect
    to well-known external hosts.

    Args:
        timeout: Connection timeout in seconds, per host
        hosts: (address, port) pairs tried in order

    Returns:
        True if any host accepted a connection, False otherwise
    """
    for address in hosts:
        try:
            connection = socket.create_connection(address, timeout=timeout)
        except OSError:
            continue
        connection.close()
        return True
    return False


def network_away_check(timeout: float = 2.0) -> Callable[[], bool]:
    """Away check that reports the candidate as away while online."""
    def away_check() -> bool:
        return check_internet_connectivity(timeout=timeout)
    return away_check
