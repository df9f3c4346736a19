"""
Configuration management for Chatr.

Settings live in a small line-oriented file: one [GLOBAL] section with the
default display name and connection IP, followed by one [CHANNEL] section
per channel:

    [GLOBAL]
    DisplayName = alice
    ConnectionIP = 192.168.1.20

    [CHANNEL]
    ChannelName = lobby
    MulticastIP = 239.255.10.11
    Port = 1314

Sections repeat, so configparser cannot read this format.
"""

import os
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from .settings import ChannelSettings, SettingsError, normalize_name
from .utils.network import parse_port, default_connection_ip

SETTINGS_FILE_NAME = "ChatrSettings"

GLOBAL_SECTION = "[GLOBAL]"
CHANNEL_SECTION = "[CHANNEL]"

# Settings-file keys mapped to ChannelSettings fields
CHANNEL_KEYS = {
    'ChannelName': 'channel_name',
    'DisplayName': 'display_name',
    'ConnectionIP': 'connection_ip',
    'MulticastIP': 'multicast_ip',
    'Port': 'port',
    'Password': 'password',
}

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration operations fail."""
    pass


@dataclass
class GlobalSettings:
    """Defaults applied to channels that leave these fields unset."""
    display_name: str = ""
    connection_ip: str = ""
    
    def __post_init__(self):
        self.display_name = normalize_name(self.display_name)


def _channel_from_values(values: dict) -> Optional[ChannelSettings]:
    if not values:
        return None
    if 'port' in values:
        port = parse_port(values['port'])
        if port is None:
            logger.warning(f"Ignoring invalid port {values['port']!r} in settings file")
            del values['port']
        else:
            values['port'] = port
    try:
        return ChannelSettings(**values)
    except SettingsError as e:
        logger.warning(f"Skipping channel section: {e}")
        return None


def parse_settings(lines: Iterable[str]) -> Tuple[GlobalSettings, List[ChannelSettings]]:
    """
    Parse settings-file lines.
    
    Blank lines, unknown keys and lines without '=' are ignored.
    
    Args:
        lines: Lines of a settings file
        
    Returns:
        Tuple of (global settings, channel settings in file order)
    """
    global_settings = GlobalSettings()
    channels: List[ChannelSettings] = []
    in_global = True
    current: dict = {}
    
    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        
        if line == GLOBAL_SECTION:
            in_global = True
            continue
        if line == CHANNEL_SECTION:
            if not in_global:
                channel = _channel_from_values(current)
                if channel is not None:
                    channels.append(channel)
            in_global = False
            current = {}
            continue
        
        if '=' not in line:
            continue
        key, value = (part.strip() for part in line.split('=', 1))
        
        if in_global:
            if key == 'DisplayName':
                global_settings.display_name = normalize_name(value)
            elif key == 'ConnectionIP':
                global_settings.connection_ip = value
        elif key in CHANNEL_KEYS and value:
            current[CHANNEL_KEYS[key]] = value
    
    if not in_global:
        channel = _channel_from_values(current)
        if channel is not None:
            channels.append(channel)
    
    return global_settings, channels


def format_settings(global_settings: GlobalSettings,
                    channels: Iterable[ChannelSettings]) -> str:
    """
    Render settings in the settings-file format.
    
    Args:
        global_settings: Global defaults
        channels: Channel settings to write
        
    Returns:
        File contents
    """
    lines = [
        GLOBAL_SECTION,
        f"DisplayName = {global_settings.display_name}",
        f"ConnectionIP = {global_settings.connection_ip}",
        "",
    ]
    for channel in channels:
        lines.extend([
            CHANNEL_SECTION,
            f"ChannelName = {channel.channel_name}",
            f"DisplayName = {channel.display_name}",
            f"ConnectionIP = {channel.connection_ip}",
            f"MulticastIP = {channel.multicast_ip}",
            f"Port = {channel.port}",
            f"Password = {channel.password}",
            "",
        ])
    return "\n".join(lines)


class ChatrConfig:
    """
    Settings-file manager for Chatr.
    
    Handles locating, loading and saving the settings file.
    """
    
    def __init__(self, config_dir: str = None, file_name: str = SETTINGS_FILE_NAME):
        """
        Initialize configuration.
        
        Args:
            config_dir: Directory for configuration files. Defaults to ~/.chatr/
            file_name: Settings file name inside config_dir
        """
        if config_dir is None:
            config_dir = os.path.expanduser("~/.chatr")
        
        self.config_dir = config_dir
        self.settings_path = os.path.join(config_dir, file_name)
    
    def exists(self) -> bool:
        """Check if a settings file exists."""
        return os.path.exists(self.settings_path)
    
    def load(self) -> Tuple[GlobalSettings, List[ChannelSettings]]:
        """
        Load global and channel settings.
        
        A missing file yields empty global settings and no channels. An
        unset global connection IP falls back to the first local interface.
        
        Returns:
            Tuple of (global settings, channel settings)
            
        Raises:
            ConfigError: If the file exists but cannot be read
        """
        if not self.exists():
            global_settings, channels = GlobalSettings(), []
        else:
            try:
                with open(self.settings_path, 'r', encoding='utf-8') as f:
                    global_settings, channels = parse_settings(f)
            except OSError as e:
                raise ConfigError(f"Failed to read settings file {self.settings_path}: {e}")
            except UnicodeDecodeError as e:
                raise ConfigError(f"Settings file {self.settings_path} is not UTF-8: {e}")
        
        if not global_settings.connection_ip:
            global_settings.connection_ip = default_connection_ip()
        
        logger.info(f"Loaded {len(channels)} channel(s) from {self.settings_path}")
        return global_settings, channels
    
    def save(self, global_settings: GlobalSettings, channels: Iterable[ChannelSettings]) -> None:
        """
        Write global and channel settings.
        
        Raises:
            ConfigError: If the file cannot be written
        """
        try:
            os.makedirs(self.config_dir, exist_ok=True)
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                f.write(format_settings(global_settings, channels))
        except OSError as e:
            raise ConfigError(f"Failed to write settings file {self.settings_path}: {e}")
        
        logger.info(f"Saved settings to {self.settings_path}")
