from collections import defaultdict
from typing import Dict, Generic, Hashable, List, Set, TypeVar

H = TypeVar("H", bound=Hashable)


class RoomDirectory(Generic[H]):
    """Two-way index between live connection handles and the rooms they joined.

    Owned by the gateway and only touched from its event loop.
    """

    def __init__(self) -> None:
        self._members: Dict[str, Set[H]] = defaultdict(set)
        self._rooms: Dict[H, Set[str]] = defaultdict(set)

    def join(self, handle: H, room: str) -> bool:
        """Add handle to room. Returns False when it was already a member."""
        if handle in self._members.get(room, ()):
            return False
        self._members[room].add(handle)
        self._rooms[handle].add(room)
        return True

    def leave(self, handle: H, room: str) -> bool:
        """Remove handle from room. Returns False when it was not a member."""
        members = self._members.get(room)
        if not members or handle not in members:
            return False
        members.discard(handle)
        if not members:
            del self._members[room]
        rooms = self._rooms.get(handle)
        if rooms is not None:
            rooms.discard(room)
            if not rooms:
                del self._rooms[handle]
        return True

    def discard(self, handle: H) -> Set[str]:
        """Drop every membership of handle; returns the rooms it was in."""
        rooms = self._rooms.pop(handle, set())
        for room in rooms:
            members = self._members.get(room)
            if members is None:
                continue
            members.discard(handle)
            if not members:
                del self._members[room]
        return rooms

    def members(self, room: str) -> List[H]:
        """Snapshot of the handles joined to room."""
        return list(self._members.get(room, ()))

    def rooms_of(self, handle: H) -> Set[str]:
        return set(self._rooms.get(handle, ()))

    def is_member(self, handle: H, room: str) -> bool:
        return handle in self._members.get(room, ())

    def __len__(self) -> int:
        return len(self._rooms)
