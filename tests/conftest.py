"""
Shared fixtures: an in-memory stand-in for a multicast network.
"""

import pytest

from chatr.transport.multicast import ReceivedMessage, TransportError, AlreadyReceivingError


class FakeTransport:
    """Records sends and delivers them to every receiver on the same group/port."""
    
    def __init__(self, network, local_ip, multicast_ip, port):
        self.network = network
        self.local_ip = local_ip
        self.multicast_ip = multicast_ip
        self.port = port
        self.handler = None
        self.receiving = False
        self.closed = False
        self.sent = []
    
    def set_handler(self, handler):
        self.handler = handler
    
    def start_receiving(self, timeout=5.0):
        if self.receiving:
            raise AlreadyReceivingError("already receiving")
        if (self.multicast_ip, self.port) in self.network.unreachable:
            raise TransportError(f"cannot join {self.multicast_ip}:{self.port}")
        self.receiving = True
    
    def stop_receiving(self):
        self.receiving = False
    
    def close(self):
        self.stop_receiving()
        self.closed = True
    
    def send(self, text):
        self.sent.append(text)
        self.network.deliver(self, text)
        return True


class FakeNetwork:
    """Synchronous multicast: every send reaches all receiving transports, sender included."""
    
    def __init__(self):
        self.transports = []
        self.unreachable = set()
    
    def factory(self, local_ip, multicast_ip, port):
        transport = FakeTransport(self, local_ip, multicast_ip, port)
        self.transports.append(transport)
        return transport
    
    def deliver(self, source, text):
        for transport in list(self.transports):
            if (transport.receiving and transport.handler is not None
                    and transport.multicast_ip == source.multicast_ip
                    and transport.port == source.port):
                transport.handler(ReceivedMessage(text=text, sender=(source.local_ip, 40000)))


@pytest.fixture
def network():
    """A fresh in-memory multicast network."""
    return FakeNetwork()
