"""
Display events emitted by the protocol engine and the orchestrator.
"""

from dataclasses import dataclass

# Color hints; the console maps these to terminal colors
COLOR_CHAT = "white"
COLOR_OWN = "gray"
COLOR_PRIVATE = "magenta"
COLOR_PRESENCE = "cyan"
COLOR_STATUS = "green"
COLOR_INFO = "yellow"
COLOR_ERROR = "red"


@dataclass(frozen=True)
class DisplayEvent:
    """Text for the user, with a color hint and an attention flag."""
    text: str
    color: str = COLOR_CHAT
    notify: bool = False
    channel: str = ""
    
    def __str__(self):
        return self.text
