# gps_live/mqtt_worker.py
import json, os, threading
from typing import Optional
import paho.mqtt.client as mqtt
from .config import AppConfig
from .errors import InvalidFixError
from .ingest import IngestionService
from .models import DeviceRecord

_started = False
_started_lock = threading.Lock()

def handle_message(service: IngestionService, base: str, topic: str, payload: bytes,
                   remote: Optional[str] = None) -> Optional[DeviceRecord]:
    """Feed one `<base>/<device>` message into ingestion; None if it was skipped."""
    base_prefix = f"{base}/"
    if not topic.startswith(base_prefix):
        return None
    suffix = topic[len(base_prefix):]
    if not suffix or "/" in suffix:
        return None
    try:
        data = json.loads(payload.decode("utf-8", errors="ignore").strip())
    except json.JSONDecodeError:
        print(f"[mqtt] non-JSON payload on {topic}; skipped")
        return None
    if not isinstance(data, dict):
        print(f"[mqtt] payload on {topic} is not an object; skipped")
        return None
    try:
        return service.ingest(data.get("id"), data, header_id=suffix, remote_addr=remote)
    except InvalidFixError as e:
        print(f"[mqtt] rejected fix on {topic}: {e}")
        return None

def start_background(cfg: AppConfig, service: IngestionService) -> Optional[mqtt.Client]:
    """Start the MQTT bridge once per process; returns the client or None if disabled/started."""
    global _started
    if not cfg.mqtt.enabled:
        return None
    with _started_lock:
        if _started:
            print("[mqtt] already started; skipping")
            return None
        client = _build_client(cfg, service)
        try:
            client.connect(cfg.mqtt.host, cfg.mqtt.port, keepalive=60)
        except Exception as e:
            # loop_start keeps retrying with the configured back-off
            print(f"[mqtt] initial connect failed: {e}")
        client.loop_start()
        _started = True
        print(f"[mqtt] bridge started (pid={os.getpid()} topic={cfg.mqtt.base_topic}/+)")
        return client

def _build_client(cfg: AppConfig, service: IngestionService) -> mqtt.Client:
    client = mqtt.Client(client_id=f"gps_live_{os.getpid()}", protocol=mqtt.MQTTv5,
                         callback_api_version=mqtt.CallbackAPIVersion.VERSION2)
    if cfg.mqtt.username and cfg.mqtt.password:
        client.username_pw_set(cfg.mqtt.username, cfg.mqtt.password)
    client.user_data_set({"connected_once": False})
    client.reconnect_delay_set(min_delay=cfg.mqtt.reconnect_min, max_delay=cfg.mqtt.reconnect_max)

    base = cfg.mqtt.base_topic.rstrip("/")

    def on_connect(client, userdata, flags, reason_code, properties):
        first = not userdata.get("connected_once", False); userdata["connected_once"] = True
        tag = "connect" if first else "reconnect"
        print(f"[mqtt] {tag} rc={reason_code}")
        client.subscribe(f"{base}/+", qos=0)

    def on_disconnect(client, userdata, disconnect_flags, reason_code, properties):
        print(f"[mqtt] disconnected rc={reason_code}")

    def on_message(client, userdata, msg):
        try:
            rec = handle_message(service, base, msg.topic, msg.payload, remote=cfg.mqtt.host)
            if rec is not None and cfg.mqtt.log_messages:
                print(f"[mqtt] fix id={rec.device_id} lat={rec.fix.latitude} lon={rec.fix.longitude}")
        except Exception as e:
            # an exception escaping here stops the network loop
            print(f"[mqtt] on_message error: {e!r}")

    client.on_connect = on_connect; client.on_disconnect = on_disconnect; client.on_message = on_message
    return client
