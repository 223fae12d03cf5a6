# gps_live/hub.py
from __future__ import annotations
import threading
from queue import Full, Queue
from typing import Any, Iterator, List, NamedTuple, Optional, Set
from .errors import TransportError
from .models import DeviceRecord
from .store import DeviceStore

SNAPSHOT = "snapshot"
UPDATE = "update"
HEARTBEAT = "heartbeat"


class Event(NamedTuple):
    kind: str
    data: Any = None


_CLOSED = Event("closed")


class SubscriberHandle:
    """One subscriber channel. Fed by the hub, drained by the stream endpoint.

    Until the join snapshot has been queued the handle is *pending*: updates
    published in the meantime are parked in a backlog so they can never
    overtake the snapshot.
    """

    def __init__(self, maxsize: int) -> None:
        self._maxsize = maxsize
        self._q: Queue = Queue(maxsize=maxsize)
        self._backlog: Optional[List[Event]] = []
        self.closed = False

    def offer(self, event: Event) -> None:
        if self.closed:
            raise TransportError("channel closed")
        if self._backlog is not None:
            if len(self._backlog) >= self._maxsize:
                raise TransportError("backlog full")
            self._backlog.append(event)
            return
        try:
            self._q.put_nowait(event)
        except Full:
            raise TransportError("channel full") from None

    def _activate(self, snapshot: Event) -> None:
        backlog, self._backlog = self._backlog or [], None
        for ev in [snapshot] + backlog:
            self.offer(ev)

    def _close(self) -> None:
        self.closed = True
        self._backlog = None
        try:
            self._q.put_nowait(_CLOSED)
        except Full:
            # reader is behind; it sees `closed` after its next get()
            pass

    def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Next event, or None once the channel is closed. Raises queue.Empty on timeout."""
        if self.closed:
            return None
        ev = self._q.get(timeout=timeout)
        if ev is _CLOSED or self.closed:
            return None
        return ev

    def events(self) -> Iterator[Event]:
        while True:
            ev = self.get()
            if ev is None:
                return
            yield ev


class BroadcastHub:
    """Fans store changes out to every live subscriber.

    Delivery never blocks: a subscriber whose channel cannot take an event is
    dropped on the spot and must reconnect to get a fresh snapshot.
    """

    def __init__(self, store: DeviceStore, queue_size: int = 100) -> None:
        self._store = store
        self._queue_size = queue_size
        self._lock = threading.Lock()
        self._subs: Set[SubscriberHandle] = set()
        self._hb_thread: Optional[threading.Thread] = None
        self._hb_stop = threading.Event()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)

    def subscribe(self) -> SubscriberHandle:
        handle = SubscriberHandle(self._queue_size)
        with self._lock:
            self._subs.add(handle)
        # taken after registration: nothing published from here on is missed
        snapshot = Event(SNAPSHOT, tuple(self._store.snapshot()))
        with self._lock:
            if handle in self._subs:
                try:
                    handle._activate(snapshot)
                except TransportError as e:
                    self._drop_locked(handle, e)
        print(f"[hub] subscriber joined (snapshot={len(snapshot.data)} subscribers={self.subscriber_count})")
        return handle

    def unsubscribe(self, handle: SubscriberHandle) -> None:
        with self._lock:
            present = handle in self._subs
            self._subs.discard(handle)
            handle._close()
        if present:
            print(f"[hub] subscriber left (subscribers={self.subscriber_count})")

    def publish(self, record: DeviceRecord) -> None:
        self._broadcast(Event(UPDATE, record))

    def heartbeat(self) -> None:
        self._broadcast(Event(HEARTBEAT))

    def _broadcast(self, event: Event) -> None:
        with self._lock:
            dead = []
            for handle in self._subs:
                try:
                    handle.offer(event)
                except TransportError as e:
                    dead.append((handle, e))
            for handle, e in dead:
                self._drop_locked(handle, e)

    def _drop_locked(self, handle: SubscriberHandle, err: TransportError) -> None:
        self._subs.discard(handle)
        handle._close()
        print(f"[hub] subscriber dropped: {err}")

    # ---------- heartbeat ----------

    def start_heartbeat(self, interval: float) -> None:
        if self._hb_thread is not None:
            return
        self._hb_stop.clear()
        t = threading.Thread(target=self._hb_loop, name="hub_heartbeat", args=(interval,), daemon=True)
        t.start()
        self._hb_thread = t
        print(f"[hub] heartbeat started (interval={interval}s)")

    def stop_heartbeat(self) -> None:
        t, self._hb_thread = self._hb_thread, None
        if t is None:
            return
        self._hb_stop.set()
        t.join()

    def _hb_loop(self, interval: float) -> None:
        while not self._hb_stop.wait(interval):
            self.heartbeat()
