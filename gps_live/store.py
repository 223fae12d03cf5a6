# gps_live/store.py
from __future__ import annotations
import threading
from typing import Dict, List
from .errors import DeviceNotFound
from .models import DeviceRecord, Fix


class DeviceStore:
    """Latest fix per device id. Records are only ever replaced, never removed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: Dict[str, DeviceRecord] = {}

    def upsert(self, device_id: str, fix: Fix) -> DeviceRecord:
        record = DeviceRecord(device_id=device_id, fix=fix)
        with self._lock:
            self._records[device_id] = record
        return record

    def snapshot(self) -> List[DeviceRecord]:
        # records are frozen, a shallow copy is a consistent view
        with self._lock:
            return list(self._records.values())

    def get(self, device_id: str) -> DeviceRecord:
        with self._lock:
            record = self._records.get(device_id)
        if record is None:
            raise DeviceNotFound(device_id)
        return record

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
