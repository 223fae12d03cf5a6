import threading

from gps_live.hub import HEARTBEAT, SNAPSHOT, UPDATE, BroadcastHub
from gps_live.models import DeviceRecord, Fix
from gps_live.store import DeviceStore
from tests.conftest import FIXED_NOW


def _fix(lat=0.0):
    return Fix(latitude=lat, longitude=0.0, satellite_count=None,
               horizontal_dilution=None, observed_at=FIXED_NOW)


def test_subscribe_gets_snapshot_first(store, hub):
    store.upsert("A", _fix(1.0))
    h = hub.subscribe()
    ev = h.get(timeout=1)
    assert ev.kind == SNAPSHOT
    assert [r.device_id for r in ev.data] == ["A"]
    assert hub.subscriber_count == 1


def test_updates_follow_publish_order(store, hub):
    h = hub.subscribe()
    a = store.upsert("A", _fix(1.0))
    b = store.upsert("B", _fix(2.0))
    hub.publish(a)
    hub.publish(b)

    kinds = [h.get(timeout=1) for _ in range(3)]
    assert kinds[0].kind == SNAPSHOT
    assert (kinds[1].kind, kinds[1].data) == (UPDATE, a)
    assert (kinds[2].kind, kinds[2].data) == (UPDATE, b)


def test_update_published_while_joining_comes_after_snapshot():
    class RacyStore(DeviceStore):
        hub = None

        def snapshot(self):
            # simulates an ingestion landing between registration and snapshot
            rec = self.upsert("X", _fix(5.0))
            self.hub.publish(rec)
            return super().snapshot()

    store = RacyStore()
    hub = BroadcastHub(store, queue_size=10)
    store.hub = hub

    h = hub.subscribe()
    first, second = h.get(timeout=1), h.get(timeout=1)
    assert first.kind == SNAPSHOT
    assert second.kind == UPDATE and second.data.device_id == "X"


def test_slow_subscriber_is_dropped_without_blocking_others(store):
    hub = BroadcastHub(store, queue_size=2)
    slow = hub.subscribe()  # never drained
    fast = hub.subscribe()
    assert fast.get(timeout=1).kind == SNAPSHOT

    received = []

    def publisher():
        for i in range(20):
            hub.publish(DeviceRecord("A", _fix(float(i))))
            received.append(fast.get(timeout=1))

    t = threading.Thread(target=publisher)
    t.start()
    t.join(timeout=5)

    assert not t.is_alive()
    assert [ev.data.fix.latitude for ev in received] == [float(i) for i in range(20)]
    assert slow.closed
    assert slow.get(timeout=1) is None
    assert hub.subscriber_count == 1


def test_unsubscribe_is_idempotent(hub):
    h = hub.subscribe()
    other = hub.subscribe()
    hub.unsubscribe(h)
    hub.unsubscribe(h)
    assert hub.subscriber_count == 1
    assert h.get(timeout=1) is None
    assert list(h.events()) == []
    assert other.get(timeout=1).kind == SNAPSHOT


def test_publish_after_unsubscribe_does_not_reach_handle(store, hub):
    h = hub.subscribe()
    hub.unsubscribe(h)
    hub.publish(store.upsert("A", _fix()))
    assert h.get(timeout=1) is None


def test_heartbeat_reaches_every_subscriber(hub):
    subs = [hub.subscribe() for _ in range(3)]
    hub.heartbeat()
    for h in subs:
        assert h.get(timeout=1).kind == SNAPSHOT
        assert h.get(timeout=1).kind == HEARTBEAT


def test_heartbeat_thread_ticks(hub):
    h = hub.subscribe()
    assert h.get(timeout=1).kind == SNAPSHOT
    hub.start_heartbeat(0.05)
    assert h.get(timeout=2).kind == HEARTBEAT
    hub.stop_heartbeat()
