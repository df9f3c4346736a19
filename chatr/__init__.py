"""
Chatr: serverless, presence-aware chat over IP multicast.

Peers on the same network segment join a multicast group and exchange
plain-text chat and slash commands. There is no server: presence
(logon/logoff/userping), renaming and private messages are all carried
as broadcast traffic and interpreted by each peer.

Key Features:
- One UDP multicast socket per channel with a background receive thread
- Best-effort online-user roster rebuilt from presence traffic
- Several independent channels in one process, one of them active
- Settings file for global defaults and saved channels

Basic Usage:
    >>> from chatr import MultiChannel, ChannelSettings
    >>>
    >>> chat = MultiChannel()
    >>> chat.add_channel(ChannelSettings(channel_name="lobby",
    ...                                  display_name="alice",
    ...                                  connection_ip="192.168.1.20"))
    >>> chat.send_message("Hello, everyone!")
    >>> chat.send_message("/pm bob see you at lunch")
    >>> event = chat.events.get(timeout=1.0)
    >>> chat.shutdown()

The base64 framing on the wire is not encryption, and the channel
password is only a label.
"""

__version__ = "1.0.0"
__author__ = "Chatr Project"

# Settings and configuration
from .settings import ChannelSettings, SettingsError, DEFAULT_MULTICAST_IP, DEFAULT_PORT
from .config import ChatrConfig, ConfigError, GlobalSettings

# Transport
from .transport.multicast import MulticastTransport, TransportError, AlreadyReceivingError

# Protocol
from .protocol.engine import ProtocolEngine
from .protocol.events import DisplayEvent
from .protocol.roster import Roster

# Channels
from .channel.channel import Channel
from .channel.events import EventSink
from .channel.multichannel import MultiChannel

__all__ = [
    # Version info
    '__version__',
    
    # Settings
    'ChannelSettings',
    'SettingsError',
    'DEFAULT_MULTICAST_IP',
    'DEFAULT_PORT',
    'ChatrConfig',
    'ConfigError',
    'GlobalSettings',
    
    # Transport
    'MulticastTransport',
    'TransportError',
    'AlreadyReceivingError',
    
    # Protocol
    'ProtocolEngine',
    'DisplayEvent',
    'Roster',
    
    # Channels
    'Channel',
    'EventSink',
    'MultiChannel',
]
