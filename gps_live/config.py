# gps_live/config.py
from __future__ import annotations
import os, re
from dataclasses import dataclass, field
from typing import Any
import yaml

ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)?(?::([^}]*))?\}")

def _interpolate_env(val: Any) -> Any:
    """Replace ${VAR[:default]} in strings recursively; other types pass through."""
    if isinstance(val, str):
        def repl(m: re.Match) -> str:
            return os.getenv(m.group(1) or "", m.group(2) or "")
        return ENV_PATTERN.sub(repl, val)
    if isinstance(val, list):
        return [_interpolate_env(x) for x in val]
    if isinstance(val, dict):
        return {k: _interpolate_env(v) for k, v in val.items()}
    return val

def _as_bool(x: Any, default: bool = False) -> bool:
    if isinstance(x, bool): return x
    if x is None or x == "": return default
    return str(x).strip().lower() in ("1", "true", "yes", "on")

@dataclass(frozen=True)
class HTTPConf:
    bind: str = "0.0.0.0"
    port: int = 3000
    waitress_threads: int = 32
    static_dir: str | None = None
    max_body_bytes: int = 256 * 1024

@dataclass(frozen=True)
class StreamConf:
    heartbeat_seconds: float = 15.0
    queue_size: int = 100

@dataclass(frozen=True)
class MQTTConf:
    enabled: bool = False
    host: str = "mqtt"
    port: int = 1883
    username: str | None = None
    password: str | None = None
    base_topic: str = "gps/fixes"
    reconnect_min: int = 2
    reconnect_max: int = 30
    log_messages: bool = False

@dataclass(frozen=True)
class AppConfig:
    http: HTTPConf = field(default_factory=HTTPConf)
    stream: StreamConf = field(default_factory=StreamConf)
    mqtt: MQTTConf = field(default_factory=MQTTConf)

def build_config(data: dict) -> AppConfig:
    cfg = _interpolate_env(data or {})
    http = cfg.get("http", {}) or {}
    stream = cfg.get("stream", {}) or {}
    mqtt = cfg.get("mqtt", {}) or {}

    http_conf = HTTPConf(
        bind=str(http.get("bind", "0.0.0.0")),
        port=int(http.get("port", 3000)),
        waitress_threads=int(http.get("waitress_threads", 32)),
        static_dir=(http.get("static_dir") or None),
        max_body_bytes=int(http.get("max_body_bytes", 256 * 1024)),
    )
    stream_conf = StreamConf(
        heartbeat_seconds=max(float(stream.get("heartbeat_seconds", 15)), 1.0),
        queue_size=max(int(stream.get("queue_size", 100)), 1),
    )
    mqtt_conf = MQTTConf(
        enabled=_as_bool(mqtt.get("enabled"), False),
        host=str(mqtt.get("host", "mqtt")),
        port=int(mqtt.get("port", 1883)),
        username=mqtt.get("username") or None,
        password=mqtt.get("password") or None,
        base_topic=str(mqtt.get("base_topic", "gps/fixes")).rstrip("/"),
        reconnect_min=int(mqtt.get("reconnect_min", 2)),
        reconnect_max=int(mqtt.get("reconnect_max", 30)),
        log_messages=_as_bool(mqtt.get("log_messages"), False),
    )
    return AppConfig(http=http_conf, stream=stream_conf, mqtt=mqtt_conf)

def load_config(path: str = "/app/config.yaml") -> AppConfig:
    if not os.path.isfile(path):
        # Fallback: .yml
        alt = os.path.splitext(path)[0] + ".yml"
        if os.path.isfile(alt):
            path = alt
        else:
            raise RuntimeError(f"config not found at {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except Exception as e:
        raise RuntimeError(f"error reading {path}: {e}")
    if not isinstance(data, dict):
        raise RuntimeError(f"error reading {path}: top level must be a mapping")
    return build_config(data)
