"""
Utility functions and helpers for Chatr.
"""

from .network import is_valid_ip, parse_port, list_local_ipv4, default_connection_ip

__all__ = [
    'is_valid_ip',
    'parse_port',
    'list_local_ipv4',
    'default_connection_ip'
]
