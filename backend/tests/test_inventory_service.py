"""
Inventory adjustment engine tests.

Verifies:
- stock_added / stock_removed classification and audit quantities
- Low-stock and stock-update notifications per opted-in storekeeper
- Direct product edits record stock_adjusted and only check low stock
- History is append-only and listed newest first
"""

import pytest

from dashng.extensions import db
from dashng.models import InventoryHistory, Notification, Product
from dashng.models.auth import ROLE_STOREKEEPER
from dashng.models.inventory import (
    ACTION_PRODUCT_CREATED,
    ACTION_STOCK_ADDED,
    ACTION_STOCK_ADJUSTED,
    ACTION_STOCK_REMOVED,
)
from dashng.models.notifications import TYPE_LOW_STOCK, TYPE_STOCK_UPDATE
from dashng.services import inventory_service, products_service
from dashng.validation import NotFoundError, ValidationError


def _notifications(type_=None):
    q = db.session.query(Notification)
    if type_:
        q = q.filter(Notification.type == type_)
    return q.all()


class TestClassification:

    @pytest.mark.parametrize(
        "previous,new,expected",
        [
            (10, 20, ACTION_STOCK_ADDED),
            (10, 3, ACTION_STOCK_REMOVED),
            (0, 1, ACTION_STOCK_ADDED),
            (1, 0, ACTION_STOCK_REMOVED),
            (10, 10, ACTION_STOCK_REMOVED),
        ],
    )
    def test_classify(self, previous, new, expected):
        assert inventory_service.classify_stock_change(previous, new) == expected


class TestAdjustInventory:

    def test_drop_below_threshold(self, db_session, product, owner, storekeeper):
        change = inventory_service.adjust_inventory(
            product_id=product.id, quantity=3, performed_by_user_id=owner.id, notes="shrinkage",
        )

        assert change.product.quantity == 3
        assert change.record.action_type == ACTION_STOCK_REMOVED
        assert change.record.quantity == 7
        assert change.record.previous_quantity == 10
        assert change.record.new_quantity == 3
        assert change.record.performed_by_user_id == owner.id
        assert change.record.notes == "shrinkage"

        low = _notifications(TYPE_LOW_STOCK)
        updates = _notifications(TYPE_STOCK_UPDATE)
        assert [n.user_id for n in low] == [storekeeper.id]
        assert [n.user_id for n in updates] == [storekeeper.id]
        assert low[0].title == "Low Stock Alert"
        assert low[0].data["quantity"] == 3
        assert low[0].data["threshold"] == 5
        assert updates[0].data["previous_quantity"] == 10
        assert updates[0].data["new_quantity"] == 3
        assert updates[0].is_read is False

    def test_restock_above_threshold(self, db_session, product, owner, storekeeper):
        change = inventory_service.adjust_inventory(
            product_id=product.id, quantity=20, performed_by_user_id=owner.id,
        )

        assert change.record.action_type == ACTION_STOCK_ADDED
        assert change.record.quantity == 10
        assert _notifications(TYPE_LOW_STOCK) == []
        assert len(_notifications(TYPE_STOCK_UPDATE)) == 1

    def test_unchanged_quantity_recorded_as_removed(self, db_session, product, owner, storekeeper):
        change = inventory_service.adjust_inventory(
            product_id=product.id, quantity=10, performed_by_user_id=owner.id,
        )

        assert change.record.action_type == ACTION_STOCK_REMOVED
        assert change.record.quantity == 0
        assert len(_notifications(TYPE_STOCK_UPDATE)) == 1
        assert _notifications(TYPE_LOW_STOCK) == []

    def test_exactly_at_threshold_is_low(self, db_session, product, owner, storekeeper):
        inventory_service.adjust_inventory(product_id=product.id, quantity=5, performed_by_user_id=owner.id)

        assert len(_notifications(TYPE_LOW_STOCK)) == 1

    def test_one_notification_per_opted_in_storekeeper(self, db_session, product, owner, make_user):
        both = make_user("keeper_both", ROLE_STOREKEEPER)
        low_only = make_user("keeper_low", ROLE_STOREKEEPER, stock_update_notifications=False)
        updates_only = make_user("keeper_upd", ROLE_STOREKEEPER, low_stock_alerts=False)
        make_user("keeper_none", ROLE_STOREKEEPER, settings=False)
        make_user("keeper_gone", ROLE_STOREKEEPER, is_active=False)

        inventory_service.adjust_inventory(product_id=product.id, quantity=2, performed_by_user_id=owner.id)

        assert {n.user_id for n in _notifications(TYPE_LOW_STOCK)} == {both.id, low_only.id}
        assert {n.user_id for n in _notifications(TYPE_STOCK_UPDATE)} == {both.id, updates_only.id}
        assert len(_notifications()) == 4

    def test_owner_and_customers_not_notified(self, db_session, product, owner, customer, sales):
        inventory_service.adjust_inventory(product_id=product.id, quantity=1, performed_by_user_id=owner.id)

        assert _notifications() == []

    def test_missing_product(self, db_session, owner):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_inventory(product_id=9999, quantity=1, performed_by_user_id=owner.id)

    def test_deleted_product(self, db_session, product, owner):
        product.is_active = False
        db_session.commit()

        with pytest.raises(NotFoundError):
            inventory_service.adjust_inventory(product_id=product.id, quantity=1, performed_by_user_id=owner.id)

    def test_negative_quantity_rejected_before_write(self, db_session, product, owner, storekeeper):
        with pytest.raises(ValidationError):
            inventory_service.adjust_inventory(product_id=product.id, quantity=-1, performed_by_user_id=owner.id)

        assert db_session.get(Product, product.id).quantity == 10
        assert db_session.query(InventoryHistory).count() == 0
        assert _notifications() == []

    def test_missing_quantity_rejected(self, db_session, product, owner):
        with pytest.raises(ValidationError, match="Quantity is required"):
            inventory_service.adjust_inventory(product_id=product.id, quantity=None, performed_by_user_id=owner.id)

    def test_version_bumped(self, db_session, product, owner):
        before = product.version_id
        change = inventory_service.adjust_inventory(
            product_id=product.id, quantity=11, performed_by_user_id=owner.id,
        )
        assert change.product.version_id == before + 1


class TestDirectQuantityEdit:

    def test_edit_records_adjusted_and_low_stock_only(self, db_session, product, owner, storekeeper):
        products_service.update_product(
            product_id=product.id, patch={"quantity": 4}, performed_by_user_id=owner.id,
        )

        rows = db_session.query(InventoryHistory).all()
        assert len(rows) == 1
        assert rows[0].action_type == ACTION_STOCK_ADJUSTED
        assert rows[0].quantity == 6
        assert rows[0].previous_quantity == 10
        assert rows[0].new_quantity == 4

        assert len(_notifications(TYPE_LOW_STOCK)) == 1
        assert _notifications(TYPE_STOCK_UPDATE) == []

    def test_edit_above_threshold_sends_nothing(self, db_session, product, owner, storekeeper):
        products_service.update_product(
            product_id=product.id, patch={"quantity": 30}, performed_by_user_id=owner.id,
        )

        assert db_session.query(InventoryHistory).count() == 1
        assert _notifications() == []

    def test_edit_without_quantity_change_writes_no_history(self, db_session, product, owner, storekeeper):
        products_service.update_product(
            product_id=product.id, patch={"quantity": 10, "name": "Renamed"}, performed_by_user_id=owner.id,
        )

        assert db_session.get(Product, product.id).name == "Renamed"
        assert db_session.query(InventoryHistory).count() == 0

    def test_edit_checks_threshold_stored_before_patch(self, db_session, product, owner, storekeeper):
        products_service.update_product(
            product_id=product.id,
            patch={"quantity": 4, "low_stock_threshold": 2},
            performed_by_user_id=owner.id,
        )

        assert len(_notifications(TYPE_LOW_STOCK)) == 1
        assert db_session.get(Product, product.id).low_stock_threshold == 2

    def test_raised_threshold_in_same_patch_does_not_alert(self, db_session, product, owner, storekeeper):
        products_service.update_product(
            product_id=product.id,
            patch={"quantity": 7, "low_stock_threshold": 8},
            performed_by_user_id=owner.id,
        )

        assert _notifications(TYPE_LOW_STOCK) == []
        assert db_session.get(Product, product.id).low_stock_threshold == 8

    def test_apply_returns_none_when_unchanged(self, db_session, product, owner):
        assert inventory_service.apply_direct_quantity_edit(
            product, 10, performed_by_user_id=owner.id,
        ) is None


class TestHistory:

    def test_history_is_append_only_and_newest_first(self, db_session, product, owner):
        for qty in (8, 12, 3, 3):
            inventory_service.adjust_inventory(product_id=product.id, quantity=qty, performed_by_user_id=owner.id)

        rows = inventory_service.list_inventory_history(product_id=product.id)

        assert len(rows) == 4
        assert [r.new_quantity for r in rows] == [3, 3, 12, 8]
        assert [r.previous_quantity for r in rows] == [3, 12, 8, 10]
        assert rows[0].performed_by.username == owner.username

    def test_history_limit(self, db_session, product, owner):
        for qty in (9, 8, 7):
            inventory_service.adjust_inventory(product_id=product.id, quantity=qty, performed_by_user_id=owner.id)

        rows = inventory_service.list_inventory_history(product_id=product.id, limit=2)
        assert [r.new_quantity for r in rows] == [7, 8]

    def test_history_kept_after_soft_delete(self, db_session, product, owner):
        inventory_service.adjust_inventory(product_id=product.id, quantity=9, performed_by_user_id=owner.id)
        products_service.delete_product(product_id=product.id)

        assert len(inventory_service.list_inventory_history(product_id=product.id)) == 1

    def test_history_unknown_product(self, db_session):
        with pytest.raises(NotFoundError):
            inventory_service.list_inventory_history(product_id=9999)

    def test_create_opens_history(self, db_session, owner):
        created = products_service.create_product(
            patch={
                "name": "Adire Scarf",
                "description": "Indigo dyed",
                "price_cents": 120000,
                "category": "scarves",
                "quantity": 7,
            },
            performed_by_user_id=owner.id,
        )

        rows = inventory_service.list_inventory_history(product_id=created["id"])
        assert len(rows) == 1
        assert rows[0].action_type == ACTION_PRODUCT_CREATED
        assert rows[0].previous_quantity == 0
        assert rows[0].new_quantity == 7
        assert rows[0].quantity == 7
