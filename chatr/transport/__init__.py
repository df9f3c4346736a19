"""
Transport layer components for Chatr.

This module provides:
- Base64 datagram codec
- UDP multicast send/receive with a background receive thread
"""

from .codec import encode_datagram, decode_datagram, CodecError
from .multicast import (
    MulticastTransport,
    ReceivedMessage,
    TransportError,
    AlreadyReceivingError,
)

__all__ = [
    'encode_datagram',
    'decode_datagram',
    'CodecError',
    'MulticastTransport',
    'ReceivedMessage',
    'TransportError',
    'AlreadyReceivingError'
]
