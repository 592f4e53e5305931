import threading
from typing import Dict, Generic, Hashable, List, TypeVar

from logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T", bound=Hashable)


class _Room(Generic[T]):
    __slots__ = ("room_id", "members", "lock", "retired")

    def __init__(self, room_id: str):
        self.room_id = room_id
        self.members: List[T] = []
        self.lock = threading.Lock()
        # Set once the room has been pruned; a retired room never takes members again
        self.retired = False


class RoomRegistry(Generic[T]):
    """In-memory room membership.

    Maps a room id to the connections currently joined to it, in join order.
    A room exists in the registry only while it has at least one member.

    The registry lock only covers looking up, creating and deleting room
    entries. Member lists are guarded by a per-room lock, so operations on
    different rooms do not wait on each other. No lock is held while the
    caller does I/O.
    """

    def __init__(self):
        self._rooms: Dict[str, _Room[T]] = {}
        self._lock = threading.Lock()

    def join(self, room_id: str, connection: T) -> None:
        while True:
            with self._lock:
                room = self._rooms.get(room_id)
                if room is None:
                    room = _Room(room_id)
                    self._rooms[room_id] = room
                    logger.debug(f"Created room {room_id}")
            with room.lock:
                # Lost a race with the last member leaving; try again on a fresh entry
                if room.retired:
                    continue
                room.members.append(connection)
                logger.debug(f"Connection joined room {room_id} ({len(room.members)} members)")
                return

    def leave(self, room_id: str, connection: T) -> None:
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            return
        with room.lock:
            try:
                room.members.remove(connection)
            except ValueError:
                return
            if room.members or room.retired:
                return
            room.retired = True
            with self._lock:
                if self._rooms.get(room_id) is room:
                    del self._rooms[room_id]
        logger.debug(f"Room {room_id} is empty, removed")

    def peers_of(self, room_id: str, excluding: T) -> List[T]:
        """Snapshot of the room's members other than ``excluding``.

        Unknown rooms yield an empty list.
        """
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            return []
        with room.lock:
            return [member for member in room.members if member is not excluding]

    def size(self, room_id: str) -> int:
        with self._lock:
            room = self._rooms.get(room_id)
        if room is None:
            return 0
        with room.lock:
            return len(room.members)

    def room_ids(self) -> List[str]:
        with self._lock:
            return list(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        with self._lock:
            return room_id in self._rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
