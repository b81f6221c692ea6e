from __future__ import annotations

from ..extensions import db
from dashng.time_utils import to_utc_z


DEFAULT_LOW_STOCK_THRESHOLD = 5

ACTION_STOCK_ADDED = "stock_added"
ACTION_STOCK_REMOVED = "stock_removed"
ACTION_STOCK_ADJUSTED = "stock_adjusted"
ACTION_LOW_STOCK_ALERT = "low_stock_alert"
ACTION_PRODUCT_CREATED = "product_created"
ACTION_PRODUCT_UPDATED = "product_updated"
VALID_ACTION_TYPES = (
    ACTION_STOCK_ADDED,
    ACTION_STOCK_REMOVED,
    ACTION_STOCK_ADJUSTED,
    ACTION_LOW_STOCK_ALERT,
    ACTION_PRODUCT_CREATED,
    ACTION_PRODUCT_UPDATED,
)


class Product(db.Model):
    """
    Product catalog entry with its current stock level.

    quantity is mutated only by the inventory engine (inventory_service);
    every other field belongs to product CRUD. Deletes are soft
    (is_active=False) so audit history keeps a valid product reference.

    version_id drives optimistic locking: two requests that read the same
    row and both write it cannot both commit.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        db.Index("ix_products_category_active", "category", "is_active"),
        db.Index("ix_products_price", "price_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)

    category = db.Column(db.String(120), nullable=False)
    tags = db.Column(db.JSON, nullable=False, default=list)
    images = db.Column(db.JSON, nullable=False, default=list)
    specifications = db.Column(db.JSON, nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    low_stock_threshold = db.Column(db.Integer, nullable=False, default=DEFAULT_LOW_STOCK_THRESHOLD)

    featured = db.Column(db.Boolean, nullable=False, default=False, index=True)
    discount = db.Column(db.Integer, nullable=True)  # percent, 0..100

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.low_stock_threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "category": self.category,
            "tags": list(self.tags or []),
            "images": list(self.images or []),
            "specifications": dict(self.specifications or {}),
            "quantity": self.quantity,
            "low_stock_threshold": self.low_stock_threshold,
            "is_low_stock": self.is_low_stock,
            "featured": self.featured,
            "discount": self.discount,
            "is_active": self.is_active,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class InventoryHistory(db.Model):
    """
    Append-only audit record of one stock change.

    quantity is the absolute size of the change; previous_quantity and
    new_quantity carry the direction. Rows are never updated or deleted.
    """
    __tablename__ = "inventory_history"
    __table_args__ = (
        db.Index("ix_invhist_product_created", "product_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    action_type = db.Column(db.String(32), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    previous_quantity = db.Column(db.Integer, nullable=False)
    new_quantity = db.Column(db.Integer, nullable=False)

    performed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    notes = db.Column(db.String(500), nullable=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        index=True,
    )

    product = db.relationship("Product", backref=db.backref("inventory_history", lazy="dynamic"))
    performed_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "action_type": self.action_type,
            "quantity": self.quantity,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "performed_by_user_id": self.performed_by_user_id,
            "performed_by": self.performed_by.to_public_dict() if self.performed_by else None,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
