# gps_live/errors.py
from __future__ import annotations


class GpsLiveError(Exception):
    """Base for all errors raised by gps_live."""


class InvalidFixError(GpsLiveError):
    """Inbound fix is malformed; nothing was stored or broadcast."""


class DeviceNotFound(GpsLiveError):
    def __init__(self, device_id: str) -> None:
        super().__init__(f"device {device_id!r} not found")
        self.device_id = device_id


class InternalError(GpsLiveError):
    """Unexpected failure while processing an ingestion."""


class TransportError(GpsLiveError):
    """A subscriber channel could not accept an event (full, closed or dead)."""
