"""
Protocol engine for one Chatr channel.

Turns the "sender>payload" wire convention into presence, renaming and
private messaging on top of a broadcast-only multicast group, and turns
user-typed lines into outbound wire messages.
"""

import threading
import logging
from typing import Callable, List, Optional

from ..settings import ChannelSettings, SettingsError, normalize_name
from ..transport.multicast import MulticastTransport, ReceivedMessage, TransportError
from ..utils.network import is_valid_ip
from . import commands
from .events import (
    DisplayEvent,
    COLOR_CHAT,
    COLOR_OWN,
    COLOR_PRIVATE,
    COLOR_PRESENCE,
    COLOR_STATUS,
    COLOR_INFO,
    COLOR_ERROR,
)
from .message import WireMessage, MessageFormatError
from .roster import Roster

TransportFactory = Callable[[str, str, int], MulticastTransport]
DisplayHandler = Callable[[DisplayEvent], None]


class ProtocolEngine:
    """
    Presence-aware messaging over one multicast transport.

    The engine is connected exactly when it holds a transport. Inbound
    datagrams are handled on the transport's receive thread; everything
    else runs on the caller's thread.
    """

    def __init__(self, settings: ChannelSettings,
                 transport_factory: TransportFactory = MulticastTransport,
                 unique_roster: bool = False):
        """
        Initialize protocol engine.

        Args:
            settings: Channel identity and connection parameters
            transport_factory: Called as factory(local_ip, multicast_ip, port)
            unique_roster: Keep at most one roster entry per name
        """
        self.settings = settings
        self.transport_factory = transport_factory
        self.transport: Optional[MulticastTransport] = None
        self.roster = Roster(unique=unique_roster)
        self.display_handlers: List[DisplayHandler] = []
        self._lock = threading.RLock()
        self.logger = logging.getLogger(__name__)

    @property
    def display_name(self) -> str:
        return self.settings.display_name

    @property
    def channel_name(self) -> str:
        return self.settings.channel_name

    @property
    def is_connected(self) -> bool:
        return self.transport is not None

    def add_display_handler(self, handler: DisplayHandler) -> None:
        """Add a display event callback."""
        self.display_handlers.append(handler)

    def remove_display_handler(self, handler: DisplayHandler) -> None:
        """Remove a display event callback."""
        if handler in self.display_handlers:
            self.display_handlers.remove(handler)

    # Connection lifecycle

    def init(self) -> bool:
        """Connect using the current settings."""
        return self.connect()

    def connect(self) -> bool:
        """
        Join the multicast group and announce presence.

        An existing connection is torn down first (logoff, socket closed).

        Returns:
            True if connected
        """
        if not is_valid_ip(self.settings.connection_ip):
            self._display("Invalid client IP provided!", COLOR_ERROR)
            return False
        if not is_valid_ip(self.settings.multicast_ip):
            self._display("Invalid multicast IP provided!", COLOR_ERROR)
            return False

        with self._lock:
            if self.transport is not None:
                self.shutdown()

            settings = self.settings
            transport = self.transport_factory(
                settings.connection_ip, settings.multicast_ip, settings.port
            )
            transport.set_handler(lambda received, t=transport: self._handle_datagram(t, received))

            try:
                # Returns once the receive loop is running, so our own logon is heard
                transport.start_receiving()
            except TransportError as e:
                self.logger.error(f"Channel {settings.channel_name!r} failed to connect: {e}")
                transport.close()
                self._display(f"Could not join {settings.multicast_ip}:{settings.port}: {e}", COLOR_ERROR)
                return False

            self.transport = transport
            self.roster.clear()
            self.roster.add(self.display_name)
            self._send(WireMessage.command(self.display_name, commands.LOGON))

        self._display(
            "**************\n"
            "Joined Multicast Group:\n"
            f"IP: {settings.multicast_ip}\n"
            f"Port: {settings.port}\n"
            "**************",
            COLOR_STATUS
        )
        return True

    def shutdown(self) -> None:
        """Send logoff, clear the roster and release the transport. Idempotent."""
        with self._lock:
            transport = self.transport
            if transport is None:
                return
            self._send(WireMessage.command(self.display_name, commands.LOGOFF))
            self.roster.clear()
            self.transport = None
        transport.close()
        self.logger.info(f"Channel {self.channel_name!r} disconnected")

    # Outbound

    def send_message(self, text: str) -> None:
        """
        Handle one line of user input.

        Slash commands are interpreted locally where they are known and
        forwarded to the wire otherwise; anything else is sent as chat.
        """
        if commands.is_command(text):
            self._handle_outgoing_command(text)
        else:
            self._send(WireMessage(self.display_name, text))

    def _handle_outgoing_command(self, text: str) -> None:
        name, args = commands.parse_command(text)

        if name in commands.HELP_COMMANDS:
            self._display(self.help_text(), COLOR_INFO)

        elif name in commands.QUIT_COMMANDS:
            self.shutdown()

        elif name == commands.USER_LIST:
            names = "\n".join(self.roster.names())
            self._display(f"Active users are:\n{names}", COLOR_INFO)

        elif name == commands.CHANGE_NAME:
            self._change_name(args)

        elif name == commands.CHANGE_MULTICAST:
            if not is_valid_ip(args):
                self._display("Multicast IP is not valid", COLOR_ERROR)
                return
            self._reconfigure(self.settings.with_multicast_ip(args))

        elif name == commands.CHANGE_PORT:
            try:
                settings = self.settings.with_port(args)
            except SettingsError:
                self._display("Invalid port number provided!", COLOR_ERROR)
                return
            self._reconfigure(settings)

        elif name == commands.PM:
            if len(args.split(None, 1)) < 2:
                self._display(f"Usage: /{commands.PM} [username] [message]", COLOR_ERROR)
                return
            self._send(WireMessage.command(self.display_name, commands.PM, args))

        else:
            # Unknown here; peers may understand it
            self._send(WireMessage(self.display_name, commands.COMMAND_PREFIX + text.lstrip(commands.COMMAND_PREFIX)))

    def _change_name(self, args: str) -> None:
        new_name = normalize_name(args)
        if not new_name:
            self._display(f"Usage: /{commands.CHANGE_NAME} [username]", COLOR_ERROR)
            return

        old_name = self.display_name
        if self.is_connected:
            self._send(WireMessage.command(old_name, commands.NAME_CHANGED, new_name))
            self.roster.rename(old_name, new_name)
        self.settings = self.settings.with_display_name(new_name)
        self._display(f"You are now known as {new_name}", COLOR_INFO)

    def _reconfigure(self, settings: ChannelSettings) -> None:
        """Swap in new settings and rejoin on the new socket."""
        self.settings = settings
        self.connect()

    def _send(self, message: WireMessage, report: bool = True) -> bool:
        transport = self.transport
        if transport is None:
            if report:
                self._display("Not connected to a channel", COLOR_ERROR)
            return False
        return transport.send(message.to_wire())

    # Inbound

    def _handle_datagram(self, transport: MulticastTransport, received: ReceivedMessage) -> None:
        # Datagrams still draining from a replaced or closed transport are dropped
        if transport is not self.transport:
            self.logger.debug(f"Dropping datagram from {received.sender} on a stale transport")
            return
        self.handle_received(received)

    def handle_received(self, received: ReceivedMessage) -> None:
        """Dispatch one decoded datagram (called on the receive thread)."""
        try:
            message = WireMessage.from_wire(received.text)
        except MessageFormatError as e:
            self.logger.debug(f"Ignoring datagram from {received.sender}: {e}")
            return

        if message.is_command:
            self._handle_incoming_command(message)
            return

        from_me = message.sender == self.display_name
        self._display(
            f"{message.sender}: {message.payload}",
            COLOR_OWN if from_me else COLOR_CHAT,
            notify=not from_me
        )

    def _handle_incoming_command(self, message: WireMessage) -> None:
        name, args = message.parse_command()
        sender = message.sender
        me = self.display_name

        if name == commands.PM:
            parts = args.split(None, 1)
            target = parts[0] if parts else ""
            text = parts[1].strip() if len(parts) > 1 else ""
            if target == me:
                self._display(f"[PM]{sender}: {text}", COLOR_PRIVATE, notify=True)
            elif sender == me:
                self._display(f"[PM]{sender} to {target}: {text}", COLOR_PRIVATE)

        elif name == commands.USER_PING:
            target = args.split(None, 1)[0] if args else ""
            if target == me:
                self.roster.add(sender)

        elif name == commands.LOGOFF:
            if sender != me:
                self.roster.remove(sender)
                self._display(f"[{sender} has logged off!]", COLOR_PRESENCE)

        elif name == commands.LOGON:
            if sender != me:
                self.roster.add(sender)
                self._display(f"[{sender} has logged on!]", COLOR_PRESENCE)
                # Let the newcomer add us without us re-announcing
                self._send(WireMessage.command(me, commands.USER_PING, sender), report=False)

        elif name == commands.NAME_CHANGED:
            new_name = args.strip()
            if sender != me and new_name and new_name != me:
                self.roster.rename(sender, new_name)
                self._display(f"[{sender} has changed to {new_name}]", COLOR_PRESENCE)

        else:
            body = message.payload.lstrip(commands.COMMAND_PREFIX).strip()
            self._display(f"{sender}: /{body}", COLOR_CHAT, notify=sender != me)

    # Display

    def help_text(self) -> str:
        """Usage text for channel-level commands."""
        return (
            f"You are currently connected as {self.display_name} at IP {self.settings.connection_ip}\n"
            "Command syntax and their function is listed below:\n\n"
            f"/{commands.HELP} or /{commands.HELP_S}\n"
            "        Provides this help documentation\n"
            f"/{commands.QUIT} or /{commands.QUIT_S}\n"
            "        Leave the channel\n"
            f"/{commands.USER_LIST}\n"
            "        Get a listing of users currently connected\n"
            f"/{commands.PM} [username] [message]\n"
            "        Message ONLY the specified user. Does NOT inform if user not online\n"
            f"/{commands.CHANGE_NAME} [username]\n"
            "        Change your display name\n"
            f"/{commands.CHANGE_MULTICAST} [IP address]\n"
            "        Change to a different multicast group\n"
            f"/{commands.CHANGE_PORT} [port number]\n"
            "        Change to a different port on the current multicast group\n"
        )

    def _display(self, text: str, color: str = COLOR_CHAT, notify: bool = False) -> None:
        event = DisplayEvent(text=text, color=color, notify=notify, channel=self.channel_name)
        for handler in list(self.display_handlers):
            handler(event)

    def __repr__(self):
        status = "connected" if self.is_connected else "disconnected"
        return (
            f"ProtocolEngine({self.channel_name!r} as {self.display_name!r} "
            f"on {self.settings.multicast_ip}:{self.settings.port}, {status})"
        )
