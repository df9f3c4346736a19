"""
Display event sink for Chatr.

Any number of channel receive threads publish into one queue; a single
dispatch thread hands events to subscribers in order, so one message's text
is never interleaved with another's.
"""

import threading
import logging
from queue import Queue, Empty
from typing import Callable, List, Optional

from ..protocol.events import DisplayEvent

EventHandler = Callable[[DisplayEvent], None]

_STOP = object()


class EventSink:
    """
    Multi-producer, single-consumer display event queue.
    
    Consumers either pull with get()/drain() or subscribe handlers and
    start() the dispatch thread, not both.
    """
    
    def __init__(self):
        self._queue: Queue = Queue()
        self._handlers: List[EventHandler] = []
        self._dispatch_thread: Optional[threading.Thread] = None
        self.running = False
        self.logger = logging.getLogger(__name__)
    
    def publish(self, event: DisplayEvent) -> None:
        """Queue an event. Safe to call from any thread."""
        self._queue.put(event)
    
    def subscribe(self, handler: EventHandler) -> None:
        """Add a handler called on the dispatch thread."""
        self._handlers.append(handler)
    
    def unsubscribe(self, handler: EventHandler) -> None:
        """Remove a handler."""
        if handler in self._handlers:
            self._handlers.remove(handler)
    
    def get(self, timeout: Optional[float] = None) -> Optional[DisplayEvent]:
        """
        Pull the next event.
        
        Args:
            timeout: Seconds to wait (None = block)
            
        Returns:
            The next event, or None on timeout
        """
        try:
            event = self._queue.get(timeout=timeout)
        except Empty:
            return None
        return None if event is _STOP else event
    
    def drain(self) -> List[DisplayEvent]:
        """Pull every queued event without blocking."""
        events = []
        while True:
            try:
                event = self._queue.get_nowait()
            except Empty:
                break
            if event is not _STOP:
                events.append(event)
        return events
    
    def start(self) -> None:
        """Start the dispatch thread."""
        if self.running:
            return
        self.running = True
        self._dispatch_thread = threading.Thread(
            target=self._dispatch_loop, name="chatr-display", daemon=True
        )
        self._dispatch_thread.start()
    
    def stop(self, timeout: float = 2.0) -> None:
        """Deliver what is already queued, then stop the dispatch thread."""
        if not self.running:
            return
        self._queue.put(_STOP)
        if self._dispatch_thread is not None:
            self._dispatch_thread.join(timeout=timeout)
        self._dispatch_thread = None
        self.running = False
    
    def _dispatch_loop(self) -> None:
        """Deliver events to subscribers (runs in background thread)."""
        while True:
            event = self._queue.get()
            if event is _STOP:
                break
            for handler in list(self._handlers):
                try:
                    handler(event)
                except Exception:
                    self.logger.exception("Display handler failed")
