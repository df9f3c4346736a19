"""
Interactive console front end for Chatr.

A thin line-based wrapper: reads lines from stdin, hands them to the
multi-channel orchestrator and prints display events as they arrive.
"""

import sys
import threading
import argparse
import logging
from typing import Optional

from .. import __version__
from ..config import ChatrConfig
from ..settings import ChannelSettings, normalize_name
from ..protocol import commands
from ..protocol.events import DisplayEvent
from ..utils.network import is_valid_ip, list_local_ipv4
from .multichannel import MultiChannel

PROMPT = "> "

ANSI_COLORS = {
    "white": "\033[37m",
    "gray": "\033[90m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "red": "\033[31m",
}
ANSI_RESET = "\033[0m"
BELL = "\a"


class InteractiveChat:
    """
    Interactive console session over a MultiChannel orchestrator.
    """

    def __init__(self, multichannel: MultiChannel, use_color: bool = True, stream=None):
        """
        Initialize interactive chat.

        Args:
            multichannel: Orchestrator to drive
            use_color: Print ANSI colors from the events' color hints
            stream: Output stream (default: sys.stdout)
        """
        self.multichannel = multichannel
        self.use_color = use_color
        self.stream = stream or sys.stdout
        self.running = False
        self._output_lock = threading.Lock()

        self.multichannel.events.subscribe(self._handle_event)

    def start(self) -> None:
        """Start the interactive session and block until the user quits."""
        self._write(f"=== Chatr {__version__} ===\nType /help for commands.\n")
        self.multichannel.events.start()
        self.running = True

        try:
            self.multichannel.connect_channels()
            self._input_loop()
        except KeyboardInterrupt:
            self._write("\nShutting down...\n")
        finally:
            self.stop()

    def stop(self) -> None:
        """Quit every channel and flush remaining output."""
        if not self.running:
            return
        self.running = False
        self.multichannel.shutdown()
        self.multichannel.events.stop()

    def _input_loop(self) -> None:
        """Main input loop for user commands."""
        while self.running:
            try:
                line = input(PROMPT).strip()
            except EOFError:
                break

            if not line:
                continue
            if is_quit_message(line):
                break
            if is_clear_message(line):
                self._write("\033[2J\033[H")
                continue

            self.multichannel.send_message(line)

    def _handle_event(self, event: DisplayEvent) -> None:
        """Print one display event (called on the dispatch thread)."""
        text = self.format_event(event)
        self._write(f"\n{text}\n{PROMPT}")

    def format_event(self, event: DisplayEvent) -> str:
        """Render an event for the terminal."""
        text = event.text
        if event.channel and len(self.multichannel.channels) > 1:
            text = f"[{event.channel}] {text}"
        if self.use_color and event.color in ANSI_COLORS:
            text = f"{ANSI_COLORS[event.color]}{text}{ANSI_RESET}"
        if event.notify:
            text = BELL + text
        return text

    def _write(self, text: str) -> None:
        with self._output_lock:
            self.stream.write(text)
            self.stream.flush()


def is_quit_message(line: str) -> bool:
    """True for a bare /quit or /q, which ends the whole session."""
    if not commands.is_command(line):
        return False
    name, args = commands.parse_command(line)
    return name in commands.QUIT_COMMANDS and not args


def is_clear_message(line: str) -> bool:
    """True for /clear, which only clears the local terminal."""
    return commands.is_command(line) and commands.parse_command(line)[0] == commands.CLEAR_SCREEN


def prompt_display_name() -> Optional[str]:
    """Ask for a display name on first run. Returns None if the user gives up."""
    while True:
        name = input("What name do you want to show other users? ").strip()
        if name and not commands.is_command(name) and name.lower() not in commands.QUIT_COMMANDS:
            return name
        answer = input("Bad username. Do you want to quit? (y/N) ").strip().lower()
        if answer in ("y", "yes"):
            return None


def prompt_connection_ip() -> Optional[str]:
    """Ask which local network to use. Returns None if the user quits."""
    addresses = list_local_ipv4()
    while True:
        print("Please select which network you want to communicate on:")
        for index, address in enumerate(addresses, start=1):
            print(f"   {index}) {address}")
        manual = len(addresses) + 1
        quit_choice = len(addresses) + 2
        print(f"   {manual}) Manually enter IP")
        print(f"   {quit_choice}) Quit")

        choice_text = input(f"Enter your choice [1-{quit_choice}] [Default: 1] : ").strip()
        try:
            choice = int(choice_text) if choice_text else 1
        except ValueError:
            choice = -1

        if choice == manual:
            address = input("Please provide your desired IP address: ").strip()
            if is_valid_ip(address):
                return address
            print("That's not a valid IP address!\n")
        elif choice == quit_choice:
            return None
        elif 1 <= choice <= len(addresses):
            return addresses[choice - 1]
        else:
            print("That's not a valid choice!\n")


def main(argv=None) -> int:
    """Main entry point for the console front end."""
    parser = argparse.ArgumentParser(
        description="Chatr - serverless multicast chat",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # First run: prompts for a display name and network
  chatr

  # Join the default channel as alice on a given interface
  chatr --name alice --ip 192.168.1.20 --channel lobby
        """
    )
    parser.add_argument('--config-dir', type=str,
                        help='Directory holding the ChatrSettings file (default: ~/.chatr)')
    parser.add_argument('--name', type=str,
                        help='Display name (overrides the settings file)')
    parser.add_argument('--ip', type=str,
                        help='Local interface IP (overrides the settings file)')
    parser.add_argument('--channel', type=str,
                        help='Add a channel with this name using default group and port')
    parser.add_argument('--no-color', action='store_true',
                        help='Disable colored output')
    parser.add_argument('--list-interfaces', action='store_true',
                        help='List local IPv4 addresses and exit')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--log-file', type=str,
                        help='Write log records to this file instead of stderr')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        filename=args.log_file
    )

    if args.list_interfaces:
        for address in list_local_ipv4():
            print(address)
        return 0

    if args.ip and not is_valid_ip(args.ip):
        print(f"Invalid IP address: {args.ip}")
        return 1

    config = ChatrConfig(args.config_dir)
    first_run = not config.exists()

    display_name = args.name
    connection_ip = args.ip
    try:
        if first_run:
            print("No config file found!\n\nWelcome to Chatr!")
            if not display_name:
                display_name = prompt_display_name()
                if display_name is None:
                    print("Okay, bye!")
                    return 0
            if not connection_ip:
                connection_ip = prompt_connection_ip()
                if connection_ip is None:
                    print("Okay, bye!")
                    return 0
    except (KeyboardInterrupt, EOFError):
        print("\nOkay, bye!")
        return 0

    multichannel = MultiChannel(config)
    multichannel.load_settings(display_name=display_name, connection_ip=connection_ip)

    channel_name = normalize_name(args.channel or ("general" if not multichannel.channels else ""))
    if channel_name and multichannel.find_channel(channel_name) is None:
        multichannel.add_channel(ChannelSettings(channel_name=channel_name), connect=False)

    chat = InteractiveChat(multichannel, use_color=not args.no_color)
    chat.start()
    return 0


if __name__ == '__main__':
    sys.exit(main())
