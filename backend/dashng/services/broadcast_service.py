# Overview: Best-effort fan-out of stock changes to connected websocket clients.

"""
Stock-change broadcaster

Holds the set of open websocket connections and pushes a JSON event to
each of them after a stock change commits. There is no persistence, no
ordering guarantee and no retry: a client whose send fails is dropped and
simply misses the event.
"""

from __future__ import annotations

import json
import threading

from flask import current_app
from simple_websocket import ConnectionClosed


class StockBroadcaster:
    def __init__(self):
        self._clients = set()
        self._lock = threading.Lock()

    def register(self, client) -> None:
        with self._lock:
            self._clients.add(client)

    def unregister(self, client) -> None:
        with self._lock:
            self._clients.discard(client)

    @property
    def client_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def broadcast(self, event: dict) -> int:
        """Send event to every registered client. Returns number delivered."""
        message = json.dumps(event)
        with self._lock:
            clients = list(self._clients)

        delivered = 0
        for client in clients:
            try:
                client.send(message)
                delivered += 1
            except (ConnectionClosed, OSError):
                self.unregister(client)
        return delivered


broadcaster = StockBroadcaster()


def broadcast_stock_update(product_id: int, quantity: int) -> int:
    delivered = broadcaster.broadcast({
        "type": "stock_update",
        "product_id": product_id,
        "quantity": quantity,
    })
    current_app.logger.info(
        "Stock update broadcast: product_id=%s quantity=%s clients=%s",
        product_id, quantity, delivered,
    )
    return delivered
