"""
Online-user roster for one channel.

The roster is rebuilt purely from broadcast presence traffic, so it is a
best guess: lost datagrams make it drift and nothing repairs it.
"""

import threading
from typing import Iterator, List


class Roster:
    """
    Ordered list of display names believed online.
    
    Duplicates are kept by default: a repeated logon or userping without an
    intervening logoff appends the name again. Pass unique=True to keep at
    most one entry per name.
    """
    
    def __init__(self, unique: bool = False):
        self.unique = unique
        self._names: List[str] = []
        self._lock = threading.Lock()
    
    def add(self, name: str) -> bool:
        """Append a name. Returns False if unique mode skipped it."""
        with self._lock:
            if self.unique and name in self._names:
                return False
            self._names.append(name)
            return True
    
    def remove(self, name: str) -> bool:
        """Remove the first exact match. Unknown names are a no-op."""
        with self._lock:
            try:
                self._names.remove(name)
            except ValueError:
                return False
            return True
    
    def rename(self, old_name: str, new_name: str) -> None:
        """Drop old_name (if present) and append new_name."""
        with self._lock:
            if old_name in self._names:
                self._names.remove(old_name)
            if not (self.unique and new_name in self._names):
                self._names.append(new_name)
    
    def clear(self) -> None:
        with self._lock:
            self._names.clear()
    
    def names(self) -> List[str]:
        """Snapshot of the current entries."""
        with self._lock:
            return list(self._names)
    
    def count(self, name: str) -> int:
        with self._lock:
            return self._names.count(name)
    
    def __contains__(self, name: str) -> bool:
        with self._lock:
            return name in self._names
    
    def __iter__(self) -> Iterator[str]:
        return iter(self.names())
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._names)
    
    def __repr__(self):
        return f"Roster({self.names()!r})"
