"""
Channel settings record for Chatr.

A ChannelSettings value is never mutated; reconfiguration builds a new one
with dataclasses.replace() or one of the helpers below.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Optional

from .utils.network import is_valid_ip, parse_port

DEFAULT_MULTICAST_IP = "239.255.10.11"
DEFAULT_PORT = 1314
SENDER_SEPARATOR = ">"

# Flag aliases accepted by from_flags(), mapped to field names
FLAG_FIELDS: Dict[str, str] = {
    'cn': 'channel_name',
    'channel': 'channel_name',
    'dn': 'display_name',
    'display': 'display_name',
    'lip': 'connection_ip',
    'localip': 'connection_ip',
    'mip': 'multicast_ip',
    'multicastip': 'multicast_ip',
    'p': 'port',
    'port': 'port',
    'pw': 'password',
    'password': 'password',
}


class SettingsError(Exception):
    """Raised when a settings value is invalid."""
    pass


def normalize_name(name: Optional[str]) -> str:
    """
    Make a name safe to use as a single wire token.
    
    Spaces become underscores, and so does the ">" separator, which would
    otherwise split the sender name on the wire.
    """
    if not name:
        return ""
    return name.strip().replace(' ', '_').replace(SENDER_SEPARATOR, '_')


@dataclass(frozen=True)
class ChannelSettings:
    """Identity and connection parameters for one channel."""
    channel_name: str = ""
    display_name: str = ""
    connection_ip: str = ""
    multicast_ip: str = DEFAULT_MULTICAST_IP
    port: int = DEFAULT_PORT
    password: Optional[str] = field(default=None)
    
    def __post_init__(self):
        object.__setattr__(self, 'channel_name', normalize_name(self.channel_name))
        object.__setattr__(self, 'display_name', normalize_name(self.display_name))
        
        port = parse_port(self.port)
        if port is None:
            raise SettingsError(f"Invalid port: {self.port}")
        object.__setattr__(self, 'port', port)
        
        if self.password is None:
            object.__setattr__(self, 'password', f"{self.multicast_ip}:{self.port}")
    
    @classmethod
    def from_flags(cls, text: str, base: Optional['ChannelSettings'] = None) -> 'ChannelSettings':
        """
        Build settings from a space-delimited flag string.
        
        Recognized flags are -cn, -dn, -lip, -mip, -p and -pw (plus their
        long forms). Unknown flags, flags without a value and invalid
        ports are ignored.
        
        Args:
            text: Flag string, e.g. "-cn lobby -dn alice -p 1400"
            base: Settings to start from (defaults if None)
            
        Returns:
            New ChannelSettings
        """
        values = {}
        tokens = text.split()
        for i, token in enumerate(tokens):
            if not token.startswith('-') or i + 1 >= len(tokens):
                continue
            field_name = FLAG_FIELDS.get(token.lstrip('-').lower())
            if field_name is None:
                continue
            value = tokens[i + 1]
            if field_name == 'port':
                port = parse_port(value)
                if port is None:
                    continue
                value = port
            values[field_name] = value
        
        if base is None:
            return cls(**values)
        return base._updated(**values)
    
    def with_defaults(self, display_name: str, connection_ip: str) -> 'ChannelSettings':
        """Fill in an unset display name and connection IP from global values."""
        values = {}
        if not self.display_name:
            values['display_name'] = display_name
        if not self.connection_ip:
            values['connection_ip'] = connection_ip
        return replace(self, **values) if values else self
    
    def with_multicast_ip(self, multicast_ip: str) -> 'ChannelSettings':
        """Return a copy joined to a different multicast group."""
        if not is_valid_ip(multicast_ip):
            raise SettingsError(f"Invalid multicast IP: {multicast_ip}")
        return self._updated(multicast_ip=multicast_ip.strip())
    
    def with_port(self, port) -> 'ChannelSettings':
        """Return a copy on a different port."""
        parsed = parse_port(port)
        if parsed is None:
            raise SettingsError(f"Invalid port: {port}")
        return self._updated(port=parsed)
    
    @property
    def has_default_password(self) -> bool:
        return self.password == f"{self.multicast_ip}:{self.port}"
    
    def _updated(self, **values) -> 'ChannelSettings':
        # A generated password label follows the new group and port
        if 'password' not in values and self.has_default_password:
            values['password'] = None
        return replace(self, **values)
    
    def with_display_name(self, display_name: str) -> 'ChannelSettings':
        """Return a copy with a different display name."""
        return replace(self, display_name=display_name)
    
    def describe(self) -> str:
        """Human-readable summary used by the info command."""
        return (
            f"Channel: {self.channel_name}\n"
            f"  Display name:  {self.display_name}\n"
            f"  Connection IP: {self.connection_ip}\n"
            f"  Multicast IP:  {self.multicast_ip}\n"
            f"  Port:          {self.port}\n"
            f"  Password:      {self.password}\n"
        )
