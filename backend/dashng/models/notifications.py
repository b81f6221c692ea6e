from __future__ import annotations

from ..extensions import db
from dashng.time_utils import to_utc_z


TYPE_ORDER_PLACED = "order_placed"
TYPE_ORDER_UPDATED = "order_updated"
TYPE_PAYMENT_RECEIVED = "payment_received"
TYPE_LOW_STOCK = "low_stock"
TYPE_STOCK_UPDATE = "stock_update"
TYPE_PRODUCT_REVIEW = "product_review"
TYPE_SYSTEM = "system"
VALID_NOTIFICATION_TYPES = (
    TYPE_ORDER_PLACED,
    TYPE_ORDER_UPDATED,
    TYPE_PAYMENT_RECEIVED,
    TYPE_LOW_STOCK,
    TYPE_STOCK_UPDATE,
    TYPE_PRODUCT_REVIEW,
    TYPE_SYSTEM,
)


class Notification(db.Model):
    """
    In-app notification addressed to a single user.

    Written by the notification dispatcher, then read, marked read or
    deleted by its recipient only. Rows past expires_at are hidden from
    the recipient and removed by `flask notifications purge-expired`.
    """
    __tablename__ = "notifications"
    __table_args__ = (
        db.Index("ix_notifications_user_read", "user_id", "is_read"),
        db.Index("ix_notifications_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    type = db.Column(db.String(32), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    data = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    user = db.relationship("User", backref=db.backref("notifications", lazy="dynamic"))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "read": self.is_read,
            "data": self.data,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
        }
