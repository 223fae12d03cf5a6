# gps_live/ingest.py
from __future__ import annotations
import math
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional
from .errors import InternalError, InvalidFixError
from .hub import BroadcastHub
from .models import DeviceRecord, Fix
from .store import DeviceStore

UNKNOWN_DEVICE = "unknown"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _finite(x: Any) -> bool:
    # bool is an int subclass, but `true` is not a coordinate
    if not isinstance(x, (int, float)) or isinstance(x, bool):
        return False
    try:
        return math.isfinite(x)
    except OverflowError:
        # JSON integers beyond float range
        return False


def _optional_int(x: Any) -> Optional[int]:
    if not _finite(x):
        return None
    if isinstance(x, float):
        return int(x) if x.is_integer() else None
    return x


def _optional_float(x: Any) -> Optional[float]:
    return float(x) if _finite(x) else None


def resolve_device_id(body_id: Any, header_id: Optional[str] = None,
                      remote_addr: Optional[str] = None) -> str:
    """Body id, then device header, then caller address, then "unknown"."""
    for cand in (body_id, header_id, remote_addr):
        if isinstance(cand, str) and cand:
            return cand
    return UNKNOWN_DEVICE


def parse_fix(candidate: Dict[str, Any], observed_at: datetime) -> Fix:
    if not isinstance(candidate, dict):
        raise InvalidFixError("payload must be an object")
    lat, lon = candidate.get("lat"), candidate.get("lon")
    if not _finite(lat) or not _finite(lon):
        raise InvalidFixError("lat/lon must be numeric")
    return Fix(
        latitude=float(lat),
        longitude=float(lon),
        satellite_count=_optional_int(candidate.get("sats")),
        horizontal_dilution=_optional_float(candidate.get("hdop")),
        observed_at=observed_at,
    )


class IngestionService:
    def __init__(self, store: DeviceStore, hub: BroadcastHub,
                 clock: Callable[[], datetime] = _utcnow) -> None:
        self.store = store
        self.hub = hub
        self._clock = clock
        self._lock = threading.Lock()

    def ingest(self, device_id: Any, candidate: Dict[str, Any],
               header_id: Optional[str] = None, remote_addr: Optional[str] = None) -> DeviceRecord:
        """Validate, store and broadcast one fix.

        ``observed_at`` is always the receipt time on this server. Broadcast is
        fire-and-forget: the hub never blocks on subscribers.
        """
        fix = parse_fix(candidate, self._clock())
        did = resolve_device_id(device_id, header_id, remote_addr)
        try:
            # stream order matches store order for every id
            with self._lock:
                record = self.store.upsert(did, fix)
                self.hub.publish(record)
        except Exception as e:
            raise InternalError(f"ingest failed for {did!r}: {e!r}") from e
        return record
