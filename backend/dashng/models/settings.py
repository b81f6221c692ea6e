from __future__ import annotations

from ..extensions import db
from dashng.time_utils import to_utc_z


# Grouped preference columns: {group: {key: (column, default)}}
SETTINGS_GROUPS = {
    "email": {
        "order_updates": ("email_order_updates", True),
        "promotions": ("email_promotions", True),
        "newsletter": ("email_newsletter", True),
    },
    "push": {
        "order_updates": ("push_order_updates", True),
        "promotions": ("push_promotions", False),
        "stock_alerts": ("push_stock_alerts", False),
    },
    "sms": {
        "order_updates": ("sms_order_updates", False),
        "promotions": ("sms_promotions", False),
    },
    "display": {
        "dark_mode": ("display_dark_mode", False),
        "language": ("display_language", "en"),
        "currency": ("display_currency", "NGN"),
    },
    "privacy": {
        "share_data_with_partners": ("privacy_share_data_with_partners", False),
        "allow_location_tracking": ("privacy_allow_location_tracking", False),
    },
}

# Storekeeper opt-ins consulted by the recipient resolver
ALERT_FLAGS = ("low_stock_alerts", "stock_update_notifications")


class UserSettings(db.Model):
    """
    Per-user preferences, exactly one row per user.

    Rows are created at registration and upserted with defaults on first
    read (see settings_service.ensure_user_settings). The two alert flags
    are only meaningful for storekeepers.
    """
    __tablename__ = "user_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    email_order_updates = db.Column(db.Boolean, nullable=False, default=True)
    email_promotions = db.Column(db.Boolean, nullable=False, default=True)
    email_newsletter = db.Column(db.Boolean, nullable=False, default=True)

    push_order_updates = db.Column(db.Boolean, nullable=False, default=True)
    push_promotions = db.Column(db.Boolean, nullable=False, default=False)
    push_stock_alerts = db.Column(db.Boolean, nullable=False, default=False)

    sms_order_updates = db.Column(db.Boolean, nullable=False, default=False)
    sms_promotions = db.Column(db.Boolean, nullable=False, default=False)

    display_dark_mode = db.Column(db.Boolean, nullable=False, default=False)
    display_language = db.Column(db.String(8), nullable=False, default="en")
    display_currency = db.Column(db.String(8), nullable=False, default="NGN")

    privacy_share_data_with_partners = db.Column(db.Boolean, nullable=False, default=False)
    privacy_allow_location_tracking = db.Column(db.Boolean, nullable=False, default=False)

    low_stock_alerts = db.Column(db.Boolean, nullable=False, default=True)
    stock_update_notifications = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    user = db.relationship("User", backref=db.backref("settings", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        data = {"id": self.id, "user_id": self.user_id}
        for group, keys in SETTINGS_GROUPS.items():
            data[group] = {key: getattr(self, column) for key, (column, _default) in keys.items()}
        for flag in ALERT_FLAGS:
            data[flag] = getattr(self, flag)
        data["created_at"] = to_utc_z(self.created_at)
        data["updated_at"] = to_utc_z(self.updated_at)
        return data
