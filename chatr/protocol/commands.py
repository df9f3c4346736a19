"""
Command vocabulary for Chatr.

Commands travel as "/name args" inside the message payload. Some are only
ever handled locally (help, quit, users, ...), others go on the wire.
"""

from typing import Tuple

COMMAND_PREFIX = "/"

# Channel-level commands
QUIT_S = "q"
QUIT = "quit"
HELP_S = "h"
HELP = "help"
PM = "pm"
USER_PING = "userping"
LOGOFF = "logoff"
LOGON = "logon"
USER_LIST = "users"
CHANGE_NAME = "name"
NAME_CHANGED = "namechange"
CHANGE_MULTICAST = "multicast"
CHANGE_PORT = "port"

# Orchestrator-level commands
CHANGE_CHANNEL = "channel"
ADD_CHANNEL = "add"
REMOVE_CHANNEL = "remove"
EDIT_CHANNEL = "edit"
CHANNEL_LIST = "list"
CHANNEL_INFO = "info"
CONNECT = "connect"

# Console only
CLEAR_SCREEN = "clear"

HELP_COMMANDS = (HELP, HELP_S)
QUIT_COMMANDS = (QUIT, QUIT_S)


def is_command(text: str) -> bool:
    """True if the text is a slash command."""
    return text.startswith(COMMAND_PREFIX)


def parse_command(text: str) -> Tuple[str, str]:
    """
    Split command text into name and argument text.
    
    Leading slashes are dropped and the name is lower-cased; the
    arguments keep their original case.
    
    Args:
        text: Command text, with or without the leading "/"
        
    Returns:
        Tuple of (command name, argument text)
    """
    body = text.lstrip(COMMAND_PREFIX).strip()
    parts = body.split(None, 1)
    if not parts:
        return "", ""
    name = parts[0].lower()
    args = parts[1].strip() if len(parts) > 1 else ""
    return name, args


def format_command(name: str, args: str = "") -> str:
    """Build "/name args" payload text."""
    if args:
        return f"{COMMAND_PREFIX}{name} {args}"
    return f"{COMMAND_PREFIX}{name}"
