# gps_live/sse.py
import json
from typing import Any
from .hub import HEARTBEAT, SNAPSHOT, Event

KEEP_ALIVE = ": keep-alive\n\n"


def format_event(name: str, data: Any) -> str:
    """One named event in text/event-stream framing."""
    payload = json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    return f"event: {name}\ndata: {payload}\n\n"


def encode(ev: Event) -> str:
    if ev.kind == HEARTBEAT:
        return KEEP_ALIVE
    if ev.kind == SNAPSHOT:
        return format_event(SNAPSHOT, [r.to_wire() for r in ev.data])
    return format_event(ev.kind, ev.data.to_wire())
