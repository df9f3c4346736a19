"""
Network helpers: address validation and local interface discovery.
"""

import ipaddress
import socket
import logging
from typing import List, Optional, Union

import psutil

logger = logging.getLogger(__name__)

MIN_PORT = 0
MAX_PORT = 65535


def is_valid_ip(address: str) -> bool:
    """
    Check that a string is a syntactically valid IPv4 address.
    
    Args:
        address: Address text, e.g. "239.255.10.11"
        
    Returns:
        True if the address parses
    """
    if not address:
        return False
    try:
        ipaddress.IPv4Address(address.strip())
    except ValueError:
        return False
    return True


def parse_port(value: Union[str, int]) -> Optional[int]:
    """
    Parse a UDP port number.
    
    Args:
        value: Port as text or int
        
    Returns:
        Port number in 0-65535, or None if invalid
    """
    try:
        port = int(str(value).strip())
    except (TypeError, ValueError):
        return None
    
    if port < MIN_PORT or port > MAX_PORT:
        return None
    return port


def list_local_ipv4() -> List[str]:
    """List the non-loopback IPv4 addresses assigned to this host."""
    addresses = []
    for name, entries in psutil.net_if_addrs().items():
        for entry in entries:
            if entry.family != socket.AF_INET:
                continue
            if ipaddress.IPv4Address(entry.address).is_loopback:
                continue
            if entry.address not in addresses:
                addresses.append(entry.address)
    return addresses


def default_connection_ip() -> str:
    """First local IPv4 interface address, or the wildcard address."""
    try:
        addresses = list_local_ipv4()
    except OSError as e:
        logger.warning(f"Could not enumerate network interfaces: {e}")
        addresses = []
    return addresses[0] if addresses else "0.0.0.0"
