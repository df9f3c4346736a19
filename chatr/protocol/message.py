"""
Wire message framing for Chatr.

A message on the wire is "<sender>><payload>": the sender's display name,
a '>' separator, then free text or a slash command.
"""

from dataclasses import dataclass
from typing import Tuple

from .commands import is_command, parse_command, format_command

SENDER_SEPARATOR = ">"


class MessageFormatError(Exception):
    """Raised when wire text is not in sender>payload form."""
    pass


@dataclass(frozen=True)
class WireMessage:
    """A sender name and its payload."""
    sender: str
    payload: str
    
    @classmethod
    def from_wire(cls, text: str) -> 'WireMessage':
        """
        Parse wire text.
        
        The sender is everything before the first '>', so payloads may
        contain '>' freely.
        
        Raises:
            MessageFormatError: If there is no separator
        """
        sender, sep, payload = text.partition(SENDER_SEPARATOR)
        if not sep:
            raise MessageFormatError(f"Missing sender separator: {text[:40]!r}")
        return cls(sender=sender, payload=payload)
    
    @classmethod
    def command(cls, sender: str, name: str, args: str = "") -> 'WireMessage':
        """Build a command message."""
        return cls(sender=sender, payload=format_command(name, args))
    
    def to_wire(self) -> str:
        """Render as wire text."""
        return f"{self.sender}{SENDER_SEPARATOR}{self.payload}"
    
    @property
    def is_command(self) -> bool:
        return is_command(self.payload)
    
    def parse_command(self) -> Tuple[str, str]:
        """Split a command payload into (name, args)."""
        return parse_command(self.payload)
