# entrypoint.py
import os
from gps_live.config import load_config
from gps_live import create_app
from gps_live.mqtt_worker import start_background
from waitress import serve

def main():
    cfg = load_config(os.getenv("GPS_LIVE_CONFIG", "/app/config.yaml"))
    app = create_app(cfg)
    service = app.extensions["gps_live"]
    service.hub.start_heartbeat(cfg.stream.heartbeat_seconds)
    start_background(cfg, service)
    print(f"[http] GPS server running at http://{cfg.http.bind}:{cfg.http.port}"
          + (f" | serving UI from {cfg.http.static_dir}" if cfg.http.static_dir else ""))
    serve(app, listen=f"{cfg.http.bind}:{cfg.http.port}", threads=cfg.http.waitress_threads,
          channel_timeout=60)

if __name__ == "__main__":
    main()
