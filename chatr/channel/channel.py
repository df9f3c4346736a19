"""
Channel aggregate: settings, transport and protocol engine for one
multicast session.
"""

from typing import Optional

from ..settings import ChannelSettings
from ..protocol.engine import ProtocolEngine, TransportFactory, DisplayHandler
from ..protocol.roster import Roster
from ..transport.multicast import MulticastTransport


class Channel:
    """One independent multicast messaging session."""
    
    def __init__(self, settings: ChannelSettings,
                 transport_factory: TransportFactory = MulticastTransport,
                 unique_roster: bool = False):
        self.engine = ProtocolEngine(settings, transport_factory, unique_roster)
    
    @property
    def settings(self) -> ChannelSettings:
        return self.engine.settings
    
    @property
    def channel_name(self) -> str:
        return self.engine.channel_name
    
    @property
    def display_name(self) -> str:
        return self.engine.display_name
    
    @property
    def is_connected(self) -> bool:
        return self.engine.is_connected
    
    @property
    def transport(self) -> Optional[MulticastTransport]:
        return self.engine.transport
    
    @property
    def roster(self) -> Roster:
        return self.engine.roster
    
    def add_display_handler(self, handler: DisplayHandler) -> None:
        self.engine.add_display_handler(handler)
    
    def init(self) -> bool:
        """Connect the channel."""
        return self.engine.init()
    
    def shutdown(self) -> None:
        """Log off and release the transport."""
        self.engine.shutdown()
    
    def send_message(self, text: str) -> None:
        self.engine.send_message(text)
    
    def reconfigure(self, settings: ChannelSettings) -> bool:
        """
        Replace the settings wholesale.
        
        A connected channel is fully torn down and rejoined with the new
        settings; a disconnected one just keeps them for the next connect.
        
        Returns:
            True if the channel is connected afterwards
        """
        was_connected = self.is_connected
        self.engine.shutdown()
        self.engine.settings = settings
        if was_connected:
            return self.engine.connect()
        return False
    
    def __str__(self):
        status = "connected" if self.is_connected else "disconnected"
        return f"{self.settings.describe()}  Status:        {status}\n"
    
    def __repr__(self):
        return f"Channel({self.channel_name!r}, connected={self.is_connected})"
