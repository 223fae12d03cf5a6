# gps_live/routes.py
import os
from typing import Optional
from flask import Blueprint, Response, abort, jsonify, request, send_from_directory
from .errors import DeviceNotFound, InternalError, InvalidFixError
from .ingest import IngestionService
from .sse import encode

API_PREFIXES = ("/ping", "/health", "/devices", "/device/", "/events", "/ingest")

def create_blueprint(service: IngestionService, static_dir: Optional[str] = None) -> Blueprint:
    bp = Blueprint("gps_live", __name__)
    store, hub = service.store, service.hub

    @bp.after_app_request
    def cors(resp: Response) -> Response:
        resp.headers.setdefault("Access-Control-Allow-Origin", "*")
        return resp

    @bp.get("/ping")
    def ping():
        return Response("pong", mimetype="text/plain")

    @bp.get("/health")
    def health():
        return jsonify({"status": "ok", "devices": len(store), "subscribers": hub.subscriber_count}), 200

    @bp.get("/devices")
    def devices():
        return jsonify([r.to_wire() for r in store.snapshot()])

    @bp.get("/device/<device_id>")
    def device(device_id: str):
        try:
            return jsonify(store.get(device_id).to_wire())
        except DeviceNotFound:
            return jsonify({"error": "not found"}), 404

    @bp.get("/events")
    def events():
        def event_stream():
            handle = hub.subscribe()
            try:
                for ev in handle.events():
                    yield encode(ev)
            finally:
                # client went away, write failed or the hub dropped us
                hub.unsubscribe(handle)
        return Response(event_stream(), mimetype="text/event-stream", headers={
            "Cache-Control": "no-cache, no-transform",
            "X-Accel-Buffering": "no",
        })

    @bp.route("/ingest", methods=["POST", "OPTIONS"])
    def ingest():
        if request.method == "OPTIONS":
            return Response(status=204, headers={
                "Access-Control-Allow-Methods": "POST, OPTIONS",
                "Access-Control-Allow-Headers": "Content-Type, X-Device-Id",
            })
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            body = {}
        try:
            service.ingest(body.get("id"), body,
                           header_id=request.headers.get("X-Device-Id"),
                           remote_addr=request.remote_addr)
        except InvalidFixError as e:
            return jsonify({"error": str(e)}), 400
        except InternalError as e:
            print(f"[ingest] {e}")
            return jsonify({"ok": False}), 500
        return jsonify({"ok": True}), 200

    if static_dir:
        @bp.get("/")
        @bp.get("/<path:path>")
        def spa(path: str = ""):
            if f"/{path}".startswith(API_PREFIXES):
                abort(404)
            # existing assets directly, everything else to the SPA entry point
            if path and os.path.isfile(os.path.join(static_dir, path)):
                return send_from_directory(static_dir, path, max_age=3600)
            resp = send_from_directory(static_dir, "index.html")
            resp.headers["Cache-Control"] = "no-cache"
            return resp

    return bp
