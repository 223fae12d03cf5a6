import threading

import pytest

from gps_live.errors import DeviceNotFound
from gps_live.models import Fix
from tests.conftest import FIXED_NOW


def _fix(lat, lon=0.0):
    return Fix(latitude=lat, longitude=lon, satellite_count=None,
               horizontal_dilution=None, observed_at=FIXED_NOW)


def test_upsert_creates_then_replaces(store):
    first = store.upsert("A", _fix(1.0))
    assert store.get("A") == first
    second = store.upsert("A", _fix(2.0))
    assert store.get("A") is second
    assert store.get("A").fix.latitude == 2.0
    assert len(store) == 1


def test_get_missing_raises(store):
    with pytest.raises(DeviceNotFound) as exc:
        store.get("nope")
    assert exc.value.device_id == "nope"


def test_snapshot_is_a_copy(store):
    store.upsert("A", _fix(1.0))
    snap = store.snapshot()
    store.upsert("B", _fix(2.0))
    assert [r.device_id for r in snap] == ["A"]
    assert {r.device_id for r in store.snapshot()} == {"A", "B"}


def test_last_writer_per_id_wins_under_concurrency(store):
    # each thread owns one id; its final write must survive interleaving with the others
    def writer(did):
        for i in range(200):
            store.upsert(did, _fix(float(i)))

    threads = [threading.Thread(target=writer, args=(f"D{n}",)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(store) == 8
    for n in range(8):
        assert store.get(f"D{n}").fix.latitude == 199.0
