"""
Protocol engine tests.

Covers the presence protocol, private messages, outgoing commands and the
connect/reconnect/quit lifecycle, using the in-memory network fixture.
"""

import pytest

from chatr.settings import ChannelSettings
from chatr.protocol.engine import ProtocolEngine
from chatr.protocol.events import COLOR_ERROR, COLOR_PRESENCE, COLOR_PRIVATE
from chatr.transport.multicast import ReceivedMessage

SENDER_ADDR = ("10.0.0.2", 40000)


def make_engine(network, name="alice", ip="10.0.0.1", port=1314, connect=True, **kwargs):
    settings = ChannelSettings(
        channel_name="lobby", display_name=name, connection_ip=ip, port=port
    )
    engine = ProtocolEngine(settings, transport_factory=network.factory, **kwargs)
    events = []
    engine.add_display_handler(events.append)
    if connect:
        assert engine.init()
    return engine, events


def receive(engine, text):
    engine.handle_received(ReceivedMessage(text=text, sender=SENDER_ADDR))


class TestConnectionLifecycle:
    """Test connect, quit and reconnect."""

    def test_connect_announces_logon(self, network):
        """Connecting joins the group, adds self and sends logon."""
        engine, events = make_engine(network)

        assert engine.is_connected
        assert engine.transport.receiving
        assert engine.roster.names() == ["alice"]
        assert engine.transport.sent == ["alice>/logon"]
        assert any("Joined Multicast Group" in e.text for e in events)

    def test_invalid_local_ip_stays_disconnected(self, network):
        """A bad connection IP is reported locally and nothing is opened."""
        settings = ChannelSettings(channel_name="lobby", display_name="alice",
                                   connection_ip="not-an-ip")
        engine = ProtocolEngine(settings, transport_factory=network.factory)
        events = []
        engine.add_display_handler(events.append)

        assert engine.init() is False
        assert not engine.is_connected
        assert network.transports == []
        assert events[-1].text == "Invalid client IP provided!"
        assert events[-1].color == COLOR_ERROR

    def test_invalid_multicast_ip_stays_disconnected(self, network):
        """A bad multicast IP is reported locally."""
        settings = ChannelSettings(channel_name="lobby", display_name="alice",
                                   connection_ip="10.0.0.1", multicast_ip="239.255.300.1")
        engine = ProtocolEngine(settings, transport_factory=network.factory)
        events = []
        engine.add_display_handler(events.append)

        assert engine.init() is False
        assert not engine.is_connected
        assert events[-1].text == "Invalid multicast IP provided!"

    def test_transport_failure_is_reported(self, network):
        """A socket that cannot join leaves the engine disconnected."""
        network.unreachable.add(("239.255.10.11", 1314))
        engine, events = make_engine(network, connect=False)

        assert engine.init() is False
        assert not engine.is_connected
        assert network.transports[0].closed
        assert events[-1].color == COLOR_ERROR

    def test_quit_sends_logoff_and_releases_transport(self, network):
        """Quit logs off, clears the roster and closes the socket."""
        engine, events = make_engine(network)
        transport = engine.transport
        receive(engine, "bob>/logon")

        engine.send_message("/quit")

        assert transport.sent[-1] == "alice>/logoff"
        assert transport.closed
        assert engine.transport is None
        assert not engine.is_connected
        assert len(engine.roster) == 0

    def test_short_quit_alias(self, network):
        engine, _ = make_engine(network)
        engine.send_message("/Q")
        assert not engine.is_connected

    def test_shutdown_is_idempotent(self, network):
        """Shutting down twice sends a single logoff."""
        engine, _ = make_engine(network)
        transport = engine.transport

        engine.shutdown()
        engine.shutdown()

        assert transport.sent.count("alice>/logoff") == 1

    def test_connect_twice_tears_down_first(self, network):
        """Reconnecting never leaves two sockets open."""
        engine, _ = make_engine(network)
        first = engine.transport

        engine.connect()

        assert first.closed
        assert first.sent[-1] == "alice>/logoff"
        assert engine.transport is not first
        assert engine.transport.receiving

    def test_datagram_during_teardown_is_dropped(self, network):
        """A logon drained while the socket closes leaves no trace in the next session."""
        engine, events = make_engine(network)
        transport = engine.transport
        close = transport.close

        def close_with_late_datagram():
            transport.handler(ReceivedMessage(text="bob>/logon", sender=SENDER_ADDR))
            close()

        transport.close = close_with_late_datagram
        events.clear()

        engine.shutdown()

        assert events == []
        assert "alice>/userping bob" not in transport.sent

        assert engine.init()
        assert engine.roster.names() == ["alice"]

    def test_reconnect_starts_with_fresh_roster(self, network):
        engine, _ = make_engine(network)
        receive(engine, "bob>/logon")

        engine.send_message("/port 1400")

        assert engine.roster.names() == ["alice"]


class TestIncomingPresence:
    """Test logon, logoff, userping and namechange handling."""

    def test_logon_from_peer(self, network):
        """A peer's logon adds it, shows one notice and pings it back."""
        engine, events = make_engine(network)
        events.clear()

        receive(engine, "bob>/logon")

        assert engine.roster.names() == ["alice", "bob"]
        assert len(events) == 1
        assert events[0].text == "[bob has logged on!]"
        assert events[0].color == COLOR_PRESENCE
        assert engine.transport.sent[-1] == "alice>/userping bob"

    def test_own_logon_is_ignored(self, network):
        engine, events = make_engine(network)
        events.clear()

        receive(engine, "alice>/logon")

        assert engine.roster.names() == ["alice"]
        assert events == []

    def test_userping_for_me_adds_sender(self, network):
        engine, _ = make_engine(network)
        receive(engine, "bob>/userping alice")
        assert "bob" in engine.roster

    def test_userping_for_someone_else_is_ignored(self, network):
        engine, _ = make_engine(network)
        receive(engine, "bob>/userping carol")
        assert "bob" not in engine.roster

    def test_userping_is_exact_match(self, network):
        """Names compare exactly: no prefix or case folding."""
        engine, _ = make_engine(network)
        receive(engine, "bob>/userping alice2")
        receive(engine, "carol>/userping Alice")
        assert engine.roster.names() == ["alice"]

    def test_logoff_removes_sender(self, network):
        """Logoff removes exactly that entry and shows one notice."""
        engine, events = make_engine(network)
        receive(engine, "bob>/logon")
        receive(engine, "carol>/logon")
        events.clear()

        receive(engine, "bob>/logoff")

        assert engine.roster.names() == ["alice", "carol"]
        assert [e.text for e in events] == ["[bob has logged off!]"]

    def test_logoff_from_unknown_sender(self, network):
        """Unknown senders are a no-op removal, not an error."""
        engine, events = make_engine(network)
        events.clear()

        receive(engine, "mallory>/logoff")

        assert engine.roster.names() == ["alice"]
        assert [e.color for e in events] == [COLOR_PRESENCE]

    def test_namechange_updates_roster(self, network):
        engine, events = make_engine(network)
        receive(engine, "bob>/logon")
        events.clear()

        receive(engine, "bob>/namechange robert")

        assert engine.roster.names() == ["alice", "robert"]
        assert events[0].text == "[bob has changed to robert]"

    def test_namechange_to_my_name_is_ignored(self, network):
        engine, events = make_engine(network)
        receive(engine, "bob>/logon")
        events.clear()

        receive(engine, "bob>/namechange alice")

        assert engine.roster.names() == ["alice", "bob"]
        assert events == []

    def test_repeated_logon_keeps_duplicates(self, network):
        """Default roster is a plain list: a second logon appends again."""
        engine, _ = make_engine(network)
        receive(engine, "bob>/logon")
        receive(engine, "bob>/logon")
        assert engine.roster.count("bob") == 2

    def test_unique_roster(self, network):
        engine, _ = make_engine(network, unique_roster=True)
        receive(engine, "bob>/logon")
        receive(engine, "bob>/userping alice")
        assert engine.roster.count("bob") == 1


class TestIncomingMessages:
    """Test chat rendering and odd datagrams."""

    def test_chat_from_peer(self, network):
        engine, events = make_engine(network)
        events.clear()

        receive(engine, "bob>hello > world / again")

        assert events[0].text == "bob: hello > world / again"
        assert events[0].notify
        assert events[0].channel == "lobby"

    def test_own_chat_does_not_notify(self, network):
        engine, events = make_engine(network)
        events.clear()
        engine.send_message("hi all")

        assert engine.transport.sent[-1] == "alice>hi all"
        assert events[0].text == "alice: hi all"
        assert not events[0].notify

    def test_unknown_command_rendered_as_text(self, network):
        engine, events = make_engine(network)
        events.clear()

        receive(engine, "bob>/dance wildly")

        assert events[0].text == "bob: /dance wildly"

    def test_datagram_without_separator_is_ignored(self, network):
        engine, events = make_engine(network)
        events.clear()

        receive(engine, "no separator here")

        assert events == []


class TestPrivateMessages:
    """Test pm delivery across three peers."""

    def test_pm_reaches_only_the_addressee(self, network):
        alice, alice_events = make_engine(network, name="alice", ip="10.0.0.1")
        bob, bob_events = make_engine(network, name="bob", ip="10.0.0.2")
        carol, carol_events = make_engine(network, name="carol", ip="10.0.0.3")
        for events in (alice_events, bob_events, carol_events):
            events.clear()

        alice.send_message("/pm bob lunch at noon?")

        assert [e.text for e in bob_events] == ["[PM]alice: lunch at noon?"]
        assert bob_events[0].color == COLOR_PRIVATE
        assert bob_events[0].notify
        assert [e.text for e in alice_events] == ["[PM]alice to bob: lunch at noon?"]
        assert carol_events == []

    def test_pm_without_text_is_a_usage_error(self, network):
        engine, events = make_engine(network)
        sent_before = list(engine.transport.sent)

        engine.send_message("/pm bob")

        assert engine.transport.sent == sent_before
        assert events[-1].color == COLOR_ERROR


class TestPresenceExchange:
    """Test the roster that two live peers build for each other."""

    def test_peers_learn_each_other(self, network):
        """A newcomer's logon is answered with a userping that registers the old peer."""
        alice, _ = make_engine(network, name="alice", ip="10.0.0.1")
        bob, _ = make_engine(network, name="bob", ip="10.0.0.2")

        assert alice.roster.names() == ["alice", "bob"]
        assert bob.roster.names() == ["bob", "alice"]

    def test_quit_is_seen_by_peer(self, network):
        alice, _ = make_engine(network, name="alice", ip="10.0.0.1")
        bob, _ = make_engine(network, name="bob", ip="10.0.0.2")

        bob.send_message("/quit")

        assert alice.roster.names() == ["alice"]

    def test_rename_is_seen_by_peer(self, network):
        alice, _ = make_engine(network, name="alice", ip="10.0.0.1")
        bob, _ = make_engine(network, name="bob", ip="10.0.0.2")

        bob.send_message("/name bobby tables")

        assert bob.display_name == "bobby_tables"
        assert bob.settings.display_name == "bobby_tables"
        assert bob.roster.names() == ["alice", "bobby_tables"]
        assert alice.roster.names() == ["alice", "bobby_tables"]


class TestOutgoingCommands:
    """Test locally handled commands."""

    def test_help_is_local(self, network):
        engine, events = make_engine(network)
        sent_before = list(engine.transport.sent)

        engine.send_message("/help")
        engine.send_message("/h")

        assert engine.transport.sent == sent_before
        assert "connected as alice" in events[-1].text

    def test_users_lists_roster(self, network):
        engine, events = make_engine(network)
        receive(engine, "bob>/logon")

        engine.send_message("/users")

        assert events[-1].text == "Active users are:\nalice\nbob"

    def test_name_without_argument(self, network):
        engine, events = make_engine(network)
        engine.send_message("/name")
        assert engine.display_name == "alice"
        assert events[-1].color == COLOR_ERROR

    def test_name_with_separator_stays_one_sender(self, network):
        """Peers still see the renamed user as a single sender."""
        alice, _ = make_engine(network)
        bob, _ = make_engine(network, name="bob", ip="10.0.0.2")

        alice.send_message("/name a>b")
        alice.send_message("hi")

        assert alice.display_name == "a_b"
        assert "alice>/namechange a_b" in alice.transport.sent
        assert alice.transport.sent[-1] == "a_b>hi"
        assert bob.roster.names() == ["bob", "a_b"]

    def test_unknown_command_is_forwarded(self, network):
        engine, _ = make_engine(network)
        engine.send_message("/dance wildly")
        assert engine.transport.sent[-1] == "alice>/dance wildly"

    def test_send_while_disconnected(self, network):
        engine, events = make_engine(network, connect=False)
        engine.send_message("anyone?")
        assert events[-1].color == COLOR_ERROR


class TestReconfiguration:
    """Test the multicast and port commands."""

    @pytest.mark.parametrize("bad_port", ["70000", "-1", "abc", ""])
    def test_invalid_port_keeps_connection(self, network, bad_port):
        """An invalid port leaves the channel on its old socket."""
        engine, events = make_engine(network)
        transport = engine.transport

        engine.send_message(f"/port {bad_port}")

        assert engine.transport is transport
        assert not transport.closed
        assert engine.settings.port == 1314
        assert events[-1].text == "Invalid port number provided!"

    def test_valid_port_reconnects_once(self, network):
        """A valid port tears down once and announces once on the new port."""
        engine, _ = make_engine(network)
        old = engine.transport

        engine.send_message("/port 1400")

        new = engine.transport
        assert old.closed
        assert old.sent[-1] == "alice>/logoff"
        assert new is not old
        assert new.port == 1400
        assert new.sent == ["alice>/logon"]
        assert len(network.transports) == 2
        assert engine.settings.port == 1400

    def test_invalid_multicast_keeps_connection(self, network):
        engine, events = make_engine(network)
        transport = engine.transport

        engine.send_message("/multicast 239.1")

        assert engine.transport is transport
        assert events[-1].text == "Multicast IP is not valid"

    def test_valid_multicast_reconnects(self, network):
        engine, _ = make_engine(network)
        old = engine.transport

        engine.send_message("/multicast 239.255.20.20")

        assert old.closed
        assert engine.transport.multicast_ip == "239.255.20.20"
        assert engine.settings.multicast_ip == "239.255.20.20"
        assert engine.roster.names() == ["alice"]
