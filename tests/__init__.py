"""
Test suite for Chatr.

This package contains tests for all components:
- test_transport.py: Datagram codec and multicast socket handling
- test_settings.py: Channel settings and the settings file
- test_engine.py: Presence protocol, commands and connection lifecycle
- test_multichannel.py: Channel orchestration and input routing
- test_events.py: Display event sink
- test_interactive.py: Console front end helpers
"""
