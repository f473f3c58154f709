"""Session fraud proxy service.

This module receives JSON session events from front ends, decodes them,
runs them through the fraud engine, and returns the score and verdict.
"""

from __future__ import annotations

import threading
import time
from typing import Any

# Flask exposes HTTP endpoints; CORS lets a browser front end served from
# another origin post events to us.
from flask import Flask, jsonify, request
from flask_cors import CORS

from fraud_proxy import config
from fraud_proxy.denylist import Denylist
from fraud_proxy.engine import FraudEngine
from fraud_proxy.events import Event, EventValidationError
from fraud_proxy.logger_config import setup_logger
from fraud_proxy.storage import RetentionPolicy, SessionHistoryStore

logger = setup_logger()

app = Flask(__name__)
CORS(app)


def build_engine() -> FraudEngine:
    """Wire the engine from process configuration. Called once at startup."""
    policy = RetentionPolicy(
        max_events_per_session=config.SESSION_MAX_EVENTS,
        idle_ttl_seconds=config.SESSION_IDLE_TTL_SECONDS,
    )
    denylist = Denylist.from_env()
    logger.info("loaded denylist with %d addresses", len(denylist))
    return FraudEngine(denylist=denylist, store=SessionHistoryStore(policy))


fraud_engine = build_engine()


def _error(message: str, status: int) -> Any:
    return jsonify({"status": "error", "message": message}), status


@app.route("/api/v1/events", methods=["POST"])
def analyze_event() -> Any:
    """Decode an event, score it, and return the fraud check result."""
    payload = request.get_json(silent=True)
    if payload is None:
        return _error("request body must be valid JSON", 400)
    if not isinstance(payload, dict):
        return _error("event body must be a JSON object", 400)

    try:
        event = Event.from_payload(payload)
    except EventValidationError as exc:
        return _error(str(exc), 422)

    result = fraud_engine.analyze(event)
    return jsonify(result.to_payload())


@app.route("/sessions/<path:session_id>/events", methods=["GET"])
def session_events(session_id: str) -> Any:
    """Return the recorded events for a session so operators can see context."""
    events = [event.to_payload() for event in fraud_engine.session_events(session_id)]
    return jsonify({"sessionId": session_id, "events": events})


@app.route("/health", methods=["GET"])
def health() -> Any:
    return jsonify({"status": "ok", "sessions": fraud_engine.store.session_count()})


@app.route("/metrics", methods=["GET"])
def metrics() -> Any:
    return jsonify(fraud_engine.metrics_snapshot())


def _maintenance_loop() -> None:
    """Background housekeeping: evict idle sessions periodically."""
    interval = max(5, config.MAINTENANCE_INTERVAL_SECONDS)
    while True:
        time.sleep(interval)
        try:
            fraud_engine.run_maintenance()
        except Exception:
            # keep the housekeeping thread alive; the next pass retries
            logger.exception("session maintenance failed")


def start_maintenance() -> threading.Thread | None:
    if config.SESSION_IDLE_TTL_SECONDS is None:
        return None
    thread = threading.Thread(target=_maintenance_loop, name="fraud-proxy-maint", daemon=True)
    thread.start()
    return thread


def main() -> None:
    start_maintenance()
    logger.info("starting server on port %d", config.PORT)
    app.run(host="0.0.0.0", port=config.PORT, threaded=True)


if __name__ == "__main__":
    main()
