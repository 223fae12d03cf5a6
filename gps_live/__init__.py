# gps_live/__init__.py
import os
from flask import Flask
from .config import AppConfig
from .hub import BroadcastHub
from .ingest import IngestionService
from .routes import create_blueprint
from .store import DeviceStore

def create_app(cfg: AppConfig) -> Flask:
    app = Flask(__name__, static_folder=None)
    store = DeviceStore()
    hub = BroadcastHub(store, queue_size=cfg.stream.queue_size)
    service = IngestionService(store, hub)

    static_dir = cfg.http.static_dir
    if static_dir and not os.path.isdir(static_dir):
        print(f"[http] static_dir {static_dir} missing; UI not served")
        static_dir = None
    app.register_blueprint(create_blueprint(service, static_dir=static_dir))

    app.config["CFG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = cfg.http.max_body_bytes
    app.extensions["gps_live"] = service
    return app
