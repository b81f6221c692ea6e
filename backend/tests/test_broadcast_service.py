import json

import pytest
from simple_websocket import ConnectionClosed

from dashng.services import broadcast_service
from dashng.services.broadcast_service import StockBroadcaster


class FakeSocket:
    def __init__(self, fail_with=None):
        self.sent = []
        self.fail_with = fail_with

    def send(self, message):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(json.loads(message))


class TestStockBroadcaster:

    def test_delivers_to_every_client(self):
        hub = StockBroadcaster()
        a, b = FakeSocket(), FakeSocket()
        hub.register(a)
        hub.register(b)

        assert hub.broadcast({"type": "stock_update", "product_id": 1, "quantity": 4}) == 2
        assert a.sent == b.sent == [{"type": "stock_update", "product_id": 1, "quantity": 4}]

    @pytest.mark.parametrize("error", [OSError("broken pipe"), ConnectionClosed()])
    def test_failed_client_dropped_others_served(self, error):
        hub = StockBroadcaster()
        good, bad = FakeSocket(), FakeSocket(fail_with=error)
        hub.register(good)
        hub.register(bad)

        assert hub.broadcast({"type": "stock_update"}) == 1
        assert hub.client_count == 1
        assert good.sent == [{"type": "stock_update"}]

    def test_unregister_is_idempotent(self):
        hub = StockBroadcaster()
        ws = FakeSocket()
        hub.register(ws)
        hub.unregister(ws)
        hub.unregister(ws)

        assert hub.client_count == 0
        assert hub.broadcast({"type": "stock_update"}) == 0


@pytest.fixture
def listener():
    ws = FakeSocket()
    broadcast_service.broadcaster.register(ws)
    yield ws
    broadcast_service.broadcaster.unregister(ws)


class TestStockUpdateEvents:

    def test_inventory_endpoint_broadcasts_after_commit(self, client, owner_headers, product, listener):
        client.put(f"/api/products/{product.id}/inventory", json={"quantity": 7}, headers=owner_headers)

        assert listener.sent == [{"type": "stock_update", "product_id": product.id, "quantity": 7}]

    def test_product_edit_broadcasts_quantity_change(self, client, owner_headers, product, listener):
        client.put(f"/api/products/{product.id}", json={"name": "Renamed"}, headers=owner_headers)
        assert listener.sent == []

        client.put(f"/api/products/{product.id}", json={"quantity": 2}, headers=owner_headers)
        assert listener.sent == [{"type": "stock_update", "product_id": product.id, "quantity": 2}]

    def test_rejected_adjustment_not_broadcast(self, client, owner_headers, product, listener):
        client.put(f"/api/products/{product.id}/inventory", json={"quantity": -1}, headers=owner_headers)
        client.put("/api/products/9999/inventory", json={"quantity": 1}, headers=owner_headers)

        assert listener.sent == []

    def test_health_reports_clients(self, client, db_session, listener):
        resp = client.get("/health")

        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["websocket_clients"] == 1
