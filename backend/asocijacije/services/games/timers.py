import heapq
import itertools
from typing import Callable, Dict, Optional


class TimerHandle:
    def __init__(self):
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class BackgroundScheduler:
    """Run delayed callbacks on Socket.IO background tasks.

    Each call sleeps in its own task and checks the handle before firing, so
    a cancelled timer never runs its callback.
    """

    def __init__(self, socketio, logger=None):
        self.socketio = socketio
        self.logger = logger

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()

        def _worker():
            self.socketio.sleep(delay)
            if handle.cancelled:
                return
            try:
                callback()
            except Exception:
                if self.logger is not None:
                    self.logger.exception('[timer-error] callback failed')

        self.socketio.start_background_task(_worker)
        return handle


class ManualScheduler:
    """Deterministic scheduler driven by advance(); used under TESTING."""

    def __init__(self):
        self.now = 0.0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()
        heapq.heappush(self._queue, (self.now + delay, next(self._seq), handle, callback))
        return handle

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while self._queue and self._queue[0][0] <= target:
            due, _, handle, callback = heapq.heappop(self._queue)
            self.now = due
            if not handle.cancelled:
                callback()
        self.now = target

    def pending(self) -> int:
        return sum(1 for _, _, handle, _ in self._queue if not handle.cancelled)


class Countdown:
    """Tick once per second from `seconds` down to zero, then expire."""

    def __init__(self, scheduler, seconds: int, on_tick, on_expire):
        self.scheduler = scheduler
        self.remaining = seconds
        self.on_tick = on_tick
        self.on_expire = on_expire
        self.cancelled = False
        self._handle: Optional[TimerHandle] = None

    def start(self) -> 'Countdown':
        self._handle = self.scheduler.call_later(1, self._step)
        return self

    def _step(self) -> None:
        if self.cancelled:
            return
        self.remaining -= 1
        if self.remaining <= 0:
            self.cancelled = True
            self.on_expire()
            return
        self.on_tick(self.remaining)
        if not self.cancelled:
            self._handle = self.scheduler.call_later(1, self._step)

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class RoomTimers:
    """Named, cancellable timers owned by one room.

    Starting a timer clears any prior timer of the same kind. Callbacks run
    under the room lock and only while their handle is still the current one
    for that kind, so a superseded timer can never mutate newer state.
    """

    def __init__(self, scheduler, lock):
        self.scheduler = scheduler
        self._lock = lock
        self._handles: Dict[str, object] = {}

    def after(self, kind: str, delay: float, callback: Callable[[], None]) -> None:
        self.cancel(kind)
        holder = {}

        def _fire():
            with self._lock:
                if self._handles.get(kind) is not holder.get('handle'):
                    return
                del self._handles[kind]
                callback()

        holder['handle'] = self.scheduler.call_later(delay, _fire)
        self._handles[kind] = holder['handle']

    def countdown(self, kind: str, seconds: int, on_tick, on_expire) -> Countdown:
        self.cancel(kind)
        holder = {}

        def _tick(remaining):
            with self._lock:
                if self._handles.get(kind) is holder.get('handle'):
                    on_tick(remaining)

        def _expire():
            with self._lock:
                if self._handles.get(kind) is not holder.get('handle'):
                    return
                del self._handles[kind]
                on_expire()

        timer = Countdown(self.scheduler, seconds, _tick, _expire)
        holder['handle'] = timer
        self._handles[kind] = timer
        return timer.start()

    def active(self, kind: str) -> bool:
        return kind in self._handles

    def cancel(self, kind: str) -> None:
        handle = self._handles.pop(kind, None)
        if handle is not None:
            handle.cancel()

    def cancel_all(self) -> None:
        for kind in list(self._handles):
            self.cancel(kind)
