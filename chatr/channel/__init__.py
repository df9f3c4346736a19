"""
Channel layer components for Chatr.

This module provides:
- The Channel aggregate (settings + transport + protocol engine)
- The multi-channel orchestrator and its display event sink
- Interactive console front end
"""

from .channel import Channel
from .events import EventSink
from .multichannel import MultiChannel
from .interactive import InteractiveChat

__all__ = [
    'Channel',
    'EventSink',
    'MultiChannel',
    'InteractiveChat'
]
