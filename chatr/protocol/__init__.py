"""
Protocol layer components for Chatr.

This module provides the core protocol functionality including:
- Wire message framing (sender>payload)
- The slash-command vocabulary
- Roster tracking from presence traffic
- The per-channel protocol engine
"""

from .events import DisplayEvent
from .message import WireMessage, MessageFormatError
from .roster import Roster
from .engine import ProtocolEngine

__all__ = [
    'DisplayEvent',
    'WireMessage',
    'MessageFormatError',
    'Roster',
    'ProtocolEngine'
]
