"""
In-memory directory of live rooms.

Holds the last full scan of the live list as one read-only snapshot.
Readers never lock; a refresh swaps in a whole new snapshot.
"""

import threading
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from .acfun_api import LiveRoom


class LiveRoomCache:
    """Latest published uid -> LiveRoom snapshot."""

    def __init__(self):
        self._snapshot: Mapping[int, LiveRoom] = MappingProxyType({})
        self._write_lock = threading.Lock()

    def has(self, uid: int) -> bool:
        return uid in self._snapshot

    def get(self, uid: int) -> Optional[LiveRoom]:
        return self._snapshot.get(uid)

    def replace(self, rooms: Mapping[int, LiveRoom]) -> Mapping[int, LiveRoom]:
        """
        Publish a new snapshot.

        The mapping is copied, so the caller may keep mutating its own dict.

        Returns:
            The published read-only snapshot.
        """
        snapshot = MappingProxyType(dict(rooms))
        with self._write_lock:
            self._snapshot = snapshot
        return snapshot

    def snapshot(self) -> Mapping[int, LiveRoom]:
        """The current snapshot as a whole."""
        return self._snapshot

    def live_rooms(self) -> List[Tuple[int, LiveRoom]]:
        """All live rooms sorted by uid."""
        return sorted(self._snapshot.items())

    def __len__(self) -> int:
        return len(self._snapshot)
