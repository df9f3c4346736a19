"""
UDP multicast transport for Chatr.

One MulticastTransport owns the receive socket for a single
(group, port) pair. Receiving runs on a background thread; sending uses a
fresh ephemeral socket per datagram.
"""

import socket
import struct
import threading
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .codec import encode_datagram, decode_datagram, CodecError

MAX_DATAGRAM_SIZE = 65536
MULTICAST_TTL = 1


class TransportError(Exception):
    """Raised when transport operations fail."""
    pass


class AlreadyReceivingError(TransportError):
    """Raised when start_receiving() is called on a transport that is already receiving."""
    pass


@dataclass
class ReceivedMessage:
    """A decoded datagram and the address it came from."""
    text: str
    sender: Tuple[str, int]


MessageHandler = Callable[[ReceivedMessage], None]


class MulticastTransport:
    """
    Moves text payloads over one IP multicast group/port pair.
    """
    
    def __init__(self, local_ip: str, multicast_ip: str, port: int,
                 handler: Optional[MessageHandler] = None,
                 poll_interval: float = 1.0):
        """
        Initialize multicast transport.
        
        Args:
            local_ip: Interface address used to join the group and send
            multicast_ip: Multicast group address
            port: UDP port shared by the group
            handler: Called with each ReceivedMessage (on the receive thread)
            poll_interval: Socket timeout used to re-check the stop flag
        """
        self.local_ip = local_ip
        self.multicast_ip = multicast_ip
        self.port = port
        self.handler = handler
        self.poll_interval = poll_interval
        
        self._receive_socket: Optional[socket.socket] = None
        self._receive_thread: Optional[threading.Thread] = None
        self._listening = threading.Event()
        self._lock = threading.Lock()
        self.running = False
        self.logger = logging.getLogger(__name__)
    
    @property
    def is_receiving(self) -> bool:
        """True while the background receive loop is alive."""
        return self._receive_thread is not None and self._receive_thread.is_alive()
    
    def set_handler(self, handler: Optional[MessageHandler]) -> None:
        """Set the received-message handler."""
        self.handler = handler
    
    def start_receiving(self, timeout: float = 5.0) -> None:
        """
        Bind, join the multicast group and start the background receive loop.
        
        Returns once the loop is running, so anything sent afterwards
        can be heard by this transport.
        
        Args:
            timeout: Seconds to wait for the receive thread to come up
            
        Raises:
            AlreadyReceivingError: If this transport is already receiving
            TransportError: If the socket cannot be bound or the group joined
        """
        with self._lock:
            if self._receive_socket is not None:
                raise AlreadyReceivingError(
                    f"Already receiving on {self.multicast_ip}:{self.port}"
                )
            
            sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                if hasattr(socket, 'SO_REUSEPORT'):
                    try:
                        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
                    except OSError:
                        pass
                sock.bind(('', self.port))
                
                membership = struct.pack(
                    '4s4s',
                    socket.inet_aton(self.multicast_ip),
                    socket.inet_aton(self.local_ip)
                )
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_ADD_MEMBERSHIP, membership)
                sock.settimeout(self.poll_interval)
            except OSError as e:
                sock.close()
                raise TransportError(
                    f"Failed to join {self.multicast_ip}:{self.port} on {self.local_ip}: {e}"
                ) from e
            
            self._receive_socket = sock
            self._listening.clear()
            self.running = True
            self._receive_thread = threading.Thread(
                target=self._receive_loop,
                args=(sock,),
                name=f"chatr-recv-{self.multicast_ip}:{self.port}",
                daemon=True
            )
            self._receive_thread.start()
        
        if not self._listening.wait(timeout):
            self.logger.warning(f"Receive loop for {self.multicast_ip}:{self.port} slow to start")
        self.logger.info(f"Joined multicast group {self.multicast_ip}:{self.port} on {self.local_ip}")
    
    def stop_receiving(self) -> None:
        """Shut down the receive direction and close the socket. Idempotent."""
        with self._lock:
            self.running = False
            sock = self._receive_socket
            self._receive_socket = None
            thread = self._receive_thread
            self._receive_thread = None
        
        if sock is not None:
            try:
                sock.shutdown(socket.SHUT_RD)
            except OSError:
                # Unconnected UDP sockets report ENOTCONN but still wake readers
                pass
            sock.close()
            self.logger.info(f"Left multicast group {self.multicast_ip}:{self.port}")
        
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self.poll_interval + 1.0)
    
    def close(self) -> None:
        """Release all socket resources."""
        self.stop_receiving()
    
    def send(self, text: str) -> bool:
        """
        Send one message to the group.
        
        Failures are logged and swallowed: multicast is fire-and-forget.
        
        Args:
            text: Message text
            
        Returns:
            True if the datagram was handed to the network stack
        """
        datagram = encode_datagram(text)
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP) as sock:
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, MULTICAST_TTL)
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1)
                sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_IF,
                                socket.inet_aton(self.local_ip))
                sock.bind((self.local_ip, 0))
                sock.sendto(datagram, (self.multicast_ip, self.port))
            return True
        except OSError as e:
            self.logger.error(f"Failed to send to {self.multicast_ip}:{self.port}: {e}")
            return False
    
    def _receive_loop(self, sock: socket.socket) -> None:
        """Main receive loop (runs in background thread)."""
        self._listening.set()
        while self.running:
            try:
                data, source = sock.recvfrom(MAX_DATAGRAM_SIZE)
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    self.logger.error(f"Receive loop on {self.multicast_ip}:{self.port} stopped: {e}")
                    self.running = False
                break
            
            if not data:
                # Woken by shutdown()
                continue
            
            try:
                text = decode_datagram(data)
            except CodecError as e:
                self.logger.warning(f"Dropped datagram from {source}: {e}")
                continue
            
            handler = self.handler
            if handler is None:
                continue
            try:
                handler(ReceivedMessage(text=text, sender=source))
            except Exception:
                self.logger.exception(f"Message handler failed for datagram from {source}")
    
    def __repr__(self):
        status = "receiving" if self.is_receiving else "idle"
        return f"MulticastTransport({self.local_ip} -> {self.multicast_ip}:{self.port}, {status})"
    
    def __enter__(self):
        """Context manager entry."""
        self.start_receiving()
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
