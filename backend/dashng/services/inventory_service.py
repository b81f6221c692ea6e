# Overview: Service-layer operations for inventory; encapsulates business logic and database work.

# backend/dashng/services/inventory_service.py

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import InventoryHistory, Notification, Product
from ..models.auth import ROLE_STOREKEEPER
from ..models.inventory import (
    ACTION_PRODUCT_CREATED,
    ACTION_STOCK_ADDED,
    ACTION_STOCK_ADJUSTED,
    ACTION_STOCK_REMOVED,
    VALID_ACTION_TYPES,
)
from ..models.notifications import TYPE_LOW_STOCK, TYPE_STOCK_UPDATE
from ..validation import NotFoundError, ValidationError
from .broadcast_service import broadcast_stock_update
from .concurrency import lock_for_update, run_with_retry
from .notification_service import dispatch_notifications, resolve_recipients
"""
Inventory Invariants (authoritative)

Stock model:
- Product.quantity is the current on-hand level and is never negative.
- Every change to quantity appends exactly one InventoryHistory row in the
  same DB transaction; history rows are never updated or deleted.
- History quantity is |new - previous|; direction is carried by
  previous_quantity/new_quantity and action_type.

Classification:
- Inventory endpoint: new > previous -> stock_added, otherwise stock_removed.
  An unchanged quantity is therefore recorded as stock_removed with a zero
  delta.
- Direct product edit: any changed quantity -> stock_adjusted.

Notifications:
- stock_added / stock_removed -> one stock_update notification per active
  storekeeper with stock_update_notifications enabled.
- new quantity <= low_stock_threshold -> one low_stock notification per
  active storekeeper with low_stock_alerts enabled, on both paths.
- The two checks are independent; a storekeeper can receive both.

Atomicity:
- Quantity write, history append and notification writes commit together.
  The product row is locked and versioned; concurrent writers are retried.
- The websocket broadcast happens after commit and never fails the request.
"""


@dataclass
class StockChange:
    product: Product
    record: InventoryHistory
    notifications: list[Notification] = field(default_factory=list)


def classify_stock_change(previous_quantity: int, new_quantity: int) -> str:
    if new_quantity > previous_quantity:
        return ACTION_STOCK_ADDED
    return ACTION_STOCK_REMOVED


def require_product(product_id: int, *, require_active: bool = True, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None or (require_active and not product.is_active):
        raise NotFoundError("Product not found")
    return product


def _append_history(
    *,
    product: Product,
    action_type: str,
    previous_quantity: int,
    new_quantity: int,
    performed_by_user_id: int,
    notes: str | None = None,
) -> InventoryHistory:
    if action_type not in VALID_ACTION_TYPES:
        raise ValueError(f"unknown inventory action: {action_type}")
    record = InventoryHistory(
        product_id=product.id,
        action_type=action_type,
        quantity=abs(new_quantity - previous_quantity),
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        performed_by_user_id=performed_by_user_id,
        notes=notes,
    )
    db.session.add(record)
    db.session.flush()
    return record


def _notify_stock_update(product: Product, previous_quantity: int, new_quantity: int, action_type: str):
    recipients = resolve_recipients(ROLE_STOREKEEPER, "stock_update_notifications")
    return dispatch_notifications(
        recipients,
        type=TYPE_STOCK_UPDATE,
        title="Stock Update",
        message=f'Product "{product.name}" stock updated from {previous_quantity} to {new_quantity}',
        data={
            "product_id": product.id,
            "product_name": product.name,
            "previous_quantity": previous_quantity,
            "new_quantity": new_quantity,
            "action_type": action_type,
        },
    )


def _check_low_stock(product: Product, new_quantity: int):
    if new_quantity > product.low_stock_threshold:
        return []
    recipients = resolve_recipients(ROLE_STOREKEEPER, "low_stock_alerts")
    return dispatch_notifications(
        recipients,
        type=TYPE_LOW_STOCK,
        title="Low Stock Alert",
        message=f'Product "{product.name}" is low in stock ({new_quantity} remaining)',
        data={
            "product_id": product.id,
            "product_name": product.name,
            "quantity": new_quantity,
            "threshold": product.low_stock_threshold,
        },
    )


def adjust_inventory(
    *,
    product_id: int,
    quantity: int,
    performed_by_user_id: int,
    notes: str | None = None,
) -> StockChange:
    """
    Set a product's stock to `quantity` through the inventory endpoint.

    Writes the new quantity, appends a stock_added/stock_removed history
    row, notifies opted-in storekeepers of the update and, when the new
    level is at or below the product's threshold, of low stock.

    Raises:
        NotFoundError: Product missing or deleted
        ValidationError: Negative quantity
    """
    if quantity is None:
        raise ValidationError("Quantity is required")
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")

    def _op() -> StockChange:
        product = require_product(product_id, lock=True)

        previous_quantity = product.quantity
        action_type = classify_stock_change(previous_quantity, quantity)

        product.quantity = quantity

        record = _append_history(
            product=product,
            action_type=action_type,
            previous_quantity=previous_quantity,
            new_quantity=quantity,
            performed_by_user_id=performed_by_user_id,
            notes=notes,
        )

        updates = _notify_stock_update(product, previous_quantity, quantity, action_type)
        low_stock = _check_low_stock(product, quantity)

        db.session.commit()

        current_app.logger.info(
            "Inventory adjusted: product_id=%s %s -> %s action=%s by user_id=%s "
            "stock_update_notifications=%s low_stock_notifications=%s",
            product.id, previous_quantity, quantity, action_type,
            performed_by_user_id, len(updates), len(low_stock),
        )
        return StockChange(product=product, record=record, notifications=updates + low_stock)

    change = run_with_retry(_op)
    broadcast_stock_update(change.product.id, change.product.quantity)
    return change


def apply_direct_quantity_edit(
    product: Product,
    new_quantity: int,
    *,
    performed_by_user_id: int,
) -> StockChange | None:
    """
    Record a quantity change made through the product edit form.

    Must run inside the caller's transaction before commit. Appends a
    stock_adjusted history row and runs only the low-stock check; the
    stock-update notification is reserved for the inventory endpoint.
    Returns None when the quantity did not change.
    """
    previous_quantity = product.quantity
    if new_quantity == previous_quantity:
        return None

    product.quantity = new_quantity

    record = _append_history(
        product=product,
        action_type=ACTION_STOCK_ADJUSTED,
        previous_quantity=previous_quantity,
        new_quantity=new_quantity,
        performed_by_user_id=performed_by_user_id,
    )
    notifications = _check_low_stock(product, new_quantity)
    return StockChange(product=product, record=record, notifications=notifications)


def record_product_created(product: Product, *, performed_by_user_id: int) -> InventoryHistory:
    """Opening history row for a new product (previous quantity 0)."""
    return _append_history(
        product=product,
        action_type=ACTION_PRODUCT_CREATED,
        previous_quantity=0,
        new_quantity=product.quantity,
        performed_by_user_id=performed_by_user_id,
    )


def list_inventory_history(*, product_id: int, limit: int | None = None) -> list[InventoryHistory]:
    """History for a product, newest first, with the acting user loaded."""
    require_product(product_id, require_active=False)

    q = (
        db.session.query(InventoryHistory)
        .options(joinedload(InventoryHistory.performed_by))
        .filter(InventoryHistory.product_id == product_id)
        .order_by(InventoryHistory.created_at.desc(), InventoryHistory.id.desc())
    )
    if limit is not None:
        q = q.limit(limit)
    return q.all()
