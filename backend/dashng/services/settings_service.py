# Overview: Per-user preference storage, including storekeeper alert opt-ins.

from __future__ import annotations

from ..extensions import db
from ..models import UserSettings
from ..models.settings import ALERT_FLAGS, SETTINGS_GROUPS
from ..validation import ValidationError


def ensure_user_settings(user_id: int) -> UserSettings:
    """
    Return the user's settings row, inserting one with defaults if absent.

    Flushes but does not commit; callers own the transaction.
    """
    settings = db.session.query(UserSettings).filter_by(user_id=user_id).first()
    if settings:
        return settings

    settings = UserSettings(user_id=user_id)
    for keys in SETTINGS_GROUPS.values():
        for column, default in keys.values():
            setattr(settings, column, default)
    settings.low_stock_alerts = True
    settings.stock_update_notifications = True

    db.session.add(settings)
    db.session.flush()
    return settings


def get_user_settings(user_id: int) -> dict:
    settings = ensure_user_settings(user_id)
    db.session.commit()
    return settings.to_dict()


def _coerce_setting(name: str, current, value):
    if isinstance(current, bool):
        if not isinstance(value, bool):
            raise ValidationError(f"{name} must be a boolean")
        return value
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    value = value.strip()
    if len(value) > 8:
        raise ValidationError(f"{name} exceeds max length 8")
    return value


def update_user_settings(user_id: int, data: dict) -> dict:
    """
    Partially update grouped preferences.

    Accepts the same nested shape UserSettings.to_dict() returns; keys
    left out keep their current value. Unknown keys are rejected.
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")

    settings = ensure_user_settings(user_id)
    changes: dict[str, object] = {}

    for key, value in data.items():
        if key in SETTINGS_GROUPS:
            if not isinstance(value, dict):
                raise ValidationError(f"{key} must be an object")
            group = SETTINGS_GROUPS[key]
            for sub_key, sub_value in value.items():
                if sub_key not in group:
                    raise ValidationError(f"Unknown setting: {key}.{sub_key}")
                column, _default = group[sub_key]
                changes[column] = _coerce_setting(
                    f"{key}.{sub_key}", getattr(settings, column), sub_value
                )
        elif key in ALERT_FLAGS:
            if not isinstance(value, bool):
                raise ValidationError(f"{key} must be a boolean")
            changes[key] = value
        else:
            raise ValidationError(f"Unknown setting: {key}")

    for column, value in changes.items():
        setattr(settings, column, value)

    db.session.commit()
    return settings.to_dict()
