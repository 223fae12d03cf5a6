# gps_live/models.py
from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class Fix:
    latitude: float
    longitude: float
    satellite_count: Optional[int]
    horizontal_dilution: Optional[float]
    observed_at: datetime

    @property
    def ts_ms(self) -> int:
        return int(self.observed_at.timestamp() * 1000)


@dataclass(frozen=True)
class DeviceRecord:
    device_id: str
    fix: Fix

    def to_wire(self) -> Dict[str, Any]:
        """JSON shape used by the stream and the debug routes (None -> null)."""
        return {
            "id": self.device_id,
            "lat": self.fix.latitude,
            "lon": self.fix.longitude,
            "sats": self.fix.satellite_count,
            "hdop": self.fix.horizontal_dilution,
            "ts": self.fix.ts_ms,
        }
