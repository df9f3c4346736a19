"""
Multi-channel orchestrator for Chatr.

Owns any number of channels, tracks which one is active, fans their display
events into a single sink and routes user input: orchestrator commands are
handled here, everything else goes to the active channel.
"""

import logging
from typing import Iterable, List, Optional

from ..config import ChatrConfig, ConfigError, GlobalSettings
from ..settings import ChannelSettings, normalize_name
from ..protocol import commands
from ..protocol.events import DisplayEvent, COLOR_INFO, COLOR_ERROR, COLOR_STATUS
from ..protocol.engine import TransportFactory
from ..transport.multicast import MulticastTransport
from ..utils.network import is_valid_ip
from .channel import Channel
from .events import EventSink


class MultiChannel:
    """
    Routes user input across several concurrent channels.
    """

    def __init__(self, config: Optional[ChatrConfig] = None,
                 global_settings: Optional[GlobalSettings] = None,
                 transport_factory: TransportFactory = MulticastTransport,
                 events: Optional[EventSink] = None,
                 unique_roster: bool = False):
        """
        Initialize orchestrator.

        Args:
            config: Settings file used by load_settings() and shutdown()
            global_settings: Defaults for channels without a display name / IP
            transport_factory: Passed to every channel's protocol engine
            events: Outward display event sink (a new one if None)
            unique_roster: Keep at most one roster entry per name
        """
        self.config = config
        self.global_settings = global_settings or GlobalSettings()
        self.transport_factory = transport_factory
        self.events = events or EventSink()
        self.unique_roster = unique_roster

        self.channels: List[Channel] = []
        self.active_index: Optional[int] = None
        self.logger = logging.getLogger(__name__)

    # Channel collection

    @property
    def active_channel(self) -> Optional[Channel]:
        if self.active_index is None:
            return None
        return self.channels[self.active_index]

    def find_channel(self, name: str) -> Optional[int]:
        """Index of the channel with exactly this name, or None."""
        for index, channel in enumerate(self.channels):
            if channel.channel_name == name:
                return index
        return None

    def get_channel(self, name: str) -> Optional[Channel]:
        index = self.find_channel(name)
        return None if index is None else self.channels[index]

    def load_settings(self, display_name: Optional[str] = None,
                      connection_ip: Optional[str] = None) -> None:
        """
        Load global defaults and channels from the settings file.

        Loaded channels are added disconnected; use connect_channels().

        Args:
            display_name: Overrides the file's global display name
            connection_ip: Overrides the file's global connection IP
        """
        if self.config is None:
            return
        try:
            global_settings, channels = self.config.load()
        except ConfigError as e:
            self.logger.error(str(e))
            self._display(str(e), COLOR_ERROR)
            return

        if display_name:
            global_settings.display_name = normalize_name(display_name)
        if connection_ip:
            global_settings.connection_ip = connection_ip
        self.global_settings = global_settings

        for settings in channels:
            self.add_channel(settings, connect=False)

    def add_channel(self, settings: ChannelSettings, connect: bool = True) -> Optional[Channel]:
        """
        Add a channel, filling unset fields from the global defaults.

        Args:
            settings: Channel settings
            connect: Initialize the channel right away

        Returns:
            The new channel, or None if the name is missing or taken
        """
        if not settings.channel_name:
            self._display("A channel name is required (-cn [name])", COLOR_ERROR)
            return None
        if self.find_channel(settings.channel_name) is not None:
            self._display(f"A channel named {settings.channel_name} already exists", COLOR_ERROR)
            return None

        settings = settings.with_defaults(
            self.global_settings.display_name, self.global_settings.connection_ip
        )
        channel = Channel(settings, self.transport_factory, self.unique_roster)
        channel.add_display_handler(self._relay)
        self.channels.append(channel)
        if self.active_index is None:
            self.active_index = len(self.channels) - 1

        self.logger.info(f"Added channel {settings.channel_name!r}")
        if connect:
            channel.init()
        return channel

    def remove_channel(self, name: str) -> bool:
        """Quit and drop a channel, keeping the active index valid."""
        index = self.find_channel(name)
        if index is None:
            self._display(f"No channel with name {name} could be found.", COLOR_ERROR)
            return False

        self.channels[index].shutdown()
        del self.channels[index]

        if self.active_index is not None:
            if self.active_index == index:
                self.active_index = None
            elif self.active_index > index:
                self.active_index -= 1
        self._display(f"Removed channel {name}", COLOR_STATUS)
        return True

    def switch_channel(self, name: str) -> bool:
        """Make the named channel active. Unknown names leave it unchanged."""
        index = self.find_channel(name)
        if index is None:
            self._display(f"No channel with name {name} could be found.", COLOR_ERROR)
            return False
        self.active_index = index
        self._display(f"Active channel is now {name}", COLOR_STATUS)
        return True

    def connect_channels(self, names: Optional[Iterable[str]] = None) -> None:
        """Connect the named channels, or every disconnected one."""
        for channel in self._resolve(names):
            if not channel.is_connected:
                channel.init()

    def quit_channels(self, names: Optional[Iterable[str]] = None) -> None:
        """Quit the named channels, or all of them."""
        for channel in self._resolve(names):
            channel.shutdown()

    def edit_channel(self, name: str, flags: str) -> bool:
        """Replace a channel's settings with the given flags applied."""
        index = self.find_channel(name)
        if index is None:
            self._display(f"No channel with name {name} could be found.", COLOR_ERROR)
            return False

        channel = self.channels[index]
        settings = ChannelSettings.from_flags(flags, base=channel.settings)
        if settings.channel_name != name and self.find_channel(settings.channel_name) is not None:
            self._display(f"A channel named {settings.channel_name} already exists", COLOR_ERROR)
            return False
        if not is_valid_ip(settings.connection_ip):
            self._display("Invalid client IP provided!", COLOR_ERROR)
            return False
        if not is_valid_ip(settings.multicast_ip):
            self._display("Invalid multicast IP provided!", COLOR_ERROR)
            return False

        channel.reconfigure(settings)
        self._display(str(channel), COLOR_INFO)
        return True

    def _resolve(self, names: Optional[Iterable[str]]) -> List[Channel]:
        if names is None:
            return list(self.channels)
        resolved = []
        for name in names:
            channel = self.get_channel(name)
            if channel is None:
                self._display(f"No channel with name {name} could be found.", COLOR_ERROR)
            else:
                resolved.append(channel)
        return resolved

    # Input routing

    def send_message(self, text: str) -> None:
        """
        Handle one line of user input.

        Args:
            text: Chat text or slash command
        """
        if not commands.is_command(text):
            self._forward(text)
            return

        name, args = commands.parse_command(text)
        names = args.split() or None

        if name in commands.HELP_COMMANDS:
            self._display(self.help_text(), COLOR_INFO)

        elif name in commands.QUIT_COMMANDS:
            self.quit_channels(names)

        elif name == commands.CHANGE_CHANNEL:
            if not args:
                self._display(f"Usage: /{commands.CHANGE_CHANNEL} [channel name]", COLOR_ERROR)
                return
            self.switch_channel(args)

        elif name == commands.ADD_CHANNEL:
            self.add_channel(ChannelSettings.from_flags(args))

        elif name == commands.REMOVE_CHANNEL:
            if not args:
                self._display(f"Usage: /{commands.REMOVE_CHANNEL} [channel name]", COLOR_ERROR)
                return
            self.remove_channel(args)

        elif name == commands.EDIT_CHANNEL:
            parts = args.split(None, 1)
            if len(parts) < 2:
                self._display(f"Usage: /{commands.EDIT_CHANNEL} [channel name] [flags]", COLOR_ERROR)
                return
            self.edit_channel(parts[0], parts[1])

        elif name == commands.CHANNEL_LIST:
            self._display(self.channel_list_text(all_channels=bool(args)), COLOR_INFO)

        elif name == commands.CHANNEL_INFO:
            channel = self.get_channel(args)
            if channel is None:
                self._display("Not a valid channel name.", COLOR_ERROR)
            else:
                self._display(str(channel), COLOR_INFO)

        elif name == commands.CONNECT:
            self.connect_channels(names)

        else:
            self._forward(text)

    def _forward(self, text: str) -> None:
        channel = self.active_channel
        if channel is None or not channel.is_connected:
            self._display("No channel selected for sending", COLOR_ERROR)
            return
        channel.send_message(text)

    def shutdown(self) -> None:
        """Quit every channel, then persist settings."""
        self.quit_channels()
        if self.config is None:
            return
        try:
            self.config.save(self.global_settings, [c.settings for c in self.channels])
        except ConfigError as e:
            self.logger.error(str(e))
            self._display(str(e), COLOR_ERROR)

    # Display

    def channel_list_text(self, all_channels: bool = False) -> str:
        lines = ["Channels are:"]
        for index, channel in enumerate(self.channels):
            if channel.is_connected or all_channels:
                marker = "*" if index == self.active_index else " "
                lines.append(f"{marker} {channel.channel_name}")
        return "\n".join(lines)

    def help_text(self) -> str:
        """Usage text for orchestrator and channel commands."""
        active = self.active_channel
        current = active.channel_name if active is not None else "no channel"
        text = (
            f"You are currently connected to {current}\n"
            "Command syntax and their function is listed below:\n\n"
            f"/{commands.HELP} or /{commands.HELP_S}\n"
            "        Provides this help documentation\n"
            f"/{commands.QUIT} or /{commands.QUIT_S} [channel names]\n"
            "        Quit all channels, or only the ones named\n"
            f"/{commands.CHANGE_CHANNEL} [channel name]\n"
            "        Send plain messages to a different channel\n"
            f"/{commands.ADD_CHANNEL} -cn [name] [-dn name] [-lip IP] [-mip IP] [-p port] [-pw password]\n"
            "        Create and connect a new channel\n"
            f"/{commands.EDIT_CHANNEL} [channel name] [flags]\n"
            "        Change a channel's settings, reconnecting it if needed\n"
            f"/{commands.REMOVE_CHANNEL} [channel name]\n"
            "        Quit and forget a channel\n"
            f"/{commands.CHANNEL_LIST} [all]\n"
            "        List connected channels, or all channels\n"
            f"/{commands.CHANNEL_INFO} [channel name]\n"
            "        Show a channel's settings\n"
            f"/{commands.CONNECT} [channel names]\n"
            "        Connect all disconnected channels, or only the ones named\n"
        )
        if active is not None:
            text += "\n" + active.engine.help_text()
        return text

    def _relay(self, event: DisplayEvent) -> None:
        self.events.publish(event)

    def _display(self, text: str, color: str = COLOR_INFO) -> None:
        self.events.publish(DisplayEvent(text=text, color=color))
