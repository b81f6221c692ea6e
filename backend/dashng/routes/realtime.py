# Overview: Websocket endpoint that subscribes clients to stock-change broadcasts.

import json

from flask import current_app
from simple_websocket import ConnectionClosed

from ..extensions import sock
from ..services.broadcast_service import broadcaster


@sock.route("/ws")
def stock_updates(ws):
    """
    Subscribe to stock_update events.

    Clients only listen; anything they send is logged and ignored, so a
    client cannot announce stock changes to other clients.
    """
    broadcaster.register(ws)
    current_app.logger.info("WebSocket client connected (clients=%s)", broadcaster.client_count)
    try:
        ws.send(json.dumps({
            "type": "connection_established",
            "message": "Connected to DASH NG WebSocket server",
        }))
        while True:
            raw = ws.receive()
            if raw is None:
                continue
            try:
                message = json.loads(raw)
            except (TypeError, ValueError):
                current_app.logger.warning("Ignoring malformed websocket message")
                continue
            message_type = message.get("type") if isinstance(message, dict) else None
            current_app.logger.info("Ignoring websocket message type=%s", message_type)
    except ConnectionClosed as e:
        current_app.logger.debug("WebSocket closed: %s", e)
    finally:
        broadcaster.unregister(ws)
        current_app.logger.info("WebSocket client disconnected (clients=%s)", broadcaster.client_count)
