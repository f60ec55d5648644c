import logging
import threading
from typing import Dict, Hashable, List, Set

logger = logging.getLogger(__name__)


class RoomRegistry:
    """
    In-memory map of room key -> member connection ids.

    Rooms exist only while they have members: the first join creates one,
    the last leave deletes it. Every operation is total; unknown rooms or
    connections are no-ops. A single lock serializes all reads and writes.
    """

    def __init__(self):
        self._rooms: Dict[str, Set[Hashable]] = {}
        self._lock = threading.Lock()

    def join(self, connection, room_key: str) -> bool:
        with self._lock:
            members = self._rooms.setdefault(room_key, set())
            if connection in members:
                return False
            members.add(connection)
            logger.info(f"{connection} joined room {room_key}. Total: {len(members)}")
            return True

    def leave(self, connection, room_key: str) -> bool:
        with self._lock:
            return self._discard(connection, room_key)

    def remove_from_all_rooms(self, connection) -> List[str]:
        """Drop ``connection`` everywhere; returns the keys it was removed from."""
        with self._lock:
            keys = [key for key, members in self._rooms.items() if connection in members]
            for key in keys:
                self._discard(connection, key)
            return keys

    def members_excluding(self, room_key: str, connection) -> Set[Hashable]:
        with self._lock:
            return set(self._rooms.get(room_key, ())) - {connection}

    def members(self, room_key: str) -> Set[Hashable]:
        with self._lock:
            return set(self._rooms.get(room_key, ()))

    def is_member(self, connection, room_key: str) -> bool:
        with self._lock:
            return connection in self._rooms.get(room_key, ())

    def rooms(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def __contains__(self, room_key) -> bool:
        with self._lock:
            return room_key in self._rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def _discard(self, connection, room_key: str) -> bool:
        # caller holds the lock
        members = self._rooms.get(room_key)
        if not members or connection not in members:
            return False

        members.discard(connection)
        if members:
            logger.info(f"{connection} left room {room_key}. Total: {len(members)}")
        else:
            del self._rooms[room_key]
            logger.info(f"Room {room_key} is empty and has been deleted")
        return True
