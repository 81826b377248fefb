import random
from threading import Lock
from typing import Dict, List, Optional

from .phases import GameOverPhase
from .room import Room

# No 0/O, 1/I
CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
CODE_LENGTH = 6
MAX_CODE_ATTEMPTS = 100


def normalize_code(raw) -> Optional[str]:
    """Uppercase a room code and check it against the alphabet; None if malformed."""
    if not isinstance(raw, str):
        return None
    code = raw.strip().upper()
    if len(code) != CODE_LENGTH or any(ch not in CODE_ALPHABET for ch in code):
        return None
    return code


class RoomRegistry:
    """Owns every resident Room, keyed by code.

    Rooms come in through `create` or are rehydrated from their stored record
    by `get_or_load`. A room nobody is connected to is evicted from memory
    after EMPTY_ROOM_TTL_SEC; the stored record stays until its creator
    deletes it.
    """

    def __init__(self, *, scheduler, store, emit, config, logger, rng: Optional[random.Random] = None):
        self.scheduler = scheduler
        self.store = store
        self.emit = emit
        self.config = config
        self.logger = logger
        self.rng = rng or random.Random()
        self.empty_ttl = config.get('EMPTY_ROOM_TTL_SEC', 300)
        self._rooms: Dict[str, Room] = {}
        self._evictions: Dict[str, object] = {}
        self._lock = Lock()

    def _random_code(self) -> str:
        return ''.join(self.rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))

    def generate_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = self._random_code()
            with self._lock:
                taken = code in self._rooms
            if not taken and self.store.find_room(code) is None:
                return code
        raise RuntimeError('could not allocate a free room code')

    def _build(self, code, name, creator_id, scheduled_start=None) -> Room:
        return Room(
            code,
            name,
            creator_id,
            scheduler=self.scheduler,
            store=self.store,
            emit=self.emit,
            config=self.config,
            logger=self.logger,
            scheduled_start=scheduled_start,
            rng=self.rng,
        )

    def create(self, name: str, creator_id: Optional[int], scheduled_start: Optional[str] = None) -> Optional[Room]:
        """Persist a new room record and make the room resident. None if the record could not be written."""
        code = self.generate_code()
        record = self.store.create_room(code, name, creator_id, scheduled_start)
        if record is None:
            return None
        room = self._build(code, name, creator_id, scheduled_start)
        with self._lock:
            self._rooms[code] = room
        self.logger.info(f"[room] created code={code} creator={creator_id}")
        self.track(room)
        return room

    def get(self, code) -> Optional[Room]:
        code = normalize_code(code)
        if code is None:
            return None
        with self._lock:
            return self._rooms.get(code)

    def get_or_load(self, code) -> Optional[Room]:
        code = normalize_code(code)
        if code is None:
            return None
        with self._lock:
            room = self._rooms.get(code)
        if room is not None:
            return room
        record = self.store.find_room(code)
        if record is None or record.get('status') == 'finished':
            return None
        room = self._build(code, record.get('name') or code, record.get('created_by'), record.get('scheduled_start'))
        with self._lock:
            room = self._rooms.setdefault(code, room)
        self.logger.info(f"[room] rehydrated code={code}")
        self.track(room)
        return room

    def rooms(self) -> List[Room]:
        with self._lock:
            return list(self._rooms.values())

    def public_rooms(self) -> List[dict]:
        return [room.summary() for room in self.rooms() if not isinstance(room.phase, GameOverPhase)]

    def remove(self, code) -> bool:
        code = normalize_code(code)
        if code is None:
            return False
        with self._lock:
            room = self._rooms.pop(code, None)
            handle = self._evictions.pop(code, None)
        if handle is not None:
            handle.cancel()
        if room is None:
            return False
        room.close()
        self.logger.info(f"[room] removed code={code}")
        return True

    def track(self, room: Room) -> None:
        """Schedule eviction for a room that has emptied, or cancel it if someone is back."""
        with self._lock:
            pending = self._evictions.get(room.code)
            if not room.is_empty():
                if pending is not None:
                    self._evictions.pop(room.code).cancel()
                return
            if pending is not None:
                return
            holder = {}

            def _evict():
                self._evict(room, holder.get('handle'))

            holder['handle'] = self.scheduler.call_later(self.empty_ttl, _evict)
            self._evictions[room.code] = holder['handle']

    def _evict(self, room: Room, handle) -> None:
        with room.lock:
            with self._lock:
                if self._evictions.get(room.code) is not handle:
                    return
                del self._evictions[room.code]
                if not room.is_empty() or self._rooms.get(room.code) is not room:
                    return
                del self._rooms[room.code]
            room.timers.cancel_all()
        self.logger.info(f"[room] evicted idle code={room.code}")

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)

    def __contains__(self, code) -> bool:
        with self._lock:
            return normalize_code(code) in self._rooms
