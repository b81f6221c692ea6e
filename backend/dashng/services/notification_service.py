# Overview: Recipient resolution, notification fan-out and recipient-side notification access.

from __future__ import annotations

from typing import Iterable

from ..extensions import db
from ..models import Notification, User, UserSettings
from ..models.notifications import VALID_NOTIFICATION_TYPES
from ..models.settings import ALERT_FLAGS
from ..validation import NotFoundError, ValidationError
from dashng.time_utils import utcnow


class NotificationAccessError(Exception):
    """Raised when a user touches a notification addressed to someone else."""


def resolve_recipients(role: str, flag_name: str) -> set[int]:
    """
    Return ids of active users with `role` whose settings have `flag_name` set.

    Users without a settings row never match (inner join), so accounts must
    get their settings at creation time.
    """
    if flag_name not in ALERT_FLAGS:
        raise ValueError(f"unknown alert flag: {flag_name}")

    flag_column = getattr(UserSettings, flag_name)
    rows = (
        db.session.query(User.id)
        .join(UserSettings, UserSettings.user_id == User.id)
        .filter(
            User.role == role,
            User.is_active.is_(True),
            flag_column.is_(True),
        )
        .all()
    )
    return {r[0] for r in rows}


def dispatch_notifications(
    recipients: Iterable[int],
    *,
    type: str,
    title: str,
    message: str,
    data: dict | None = None,
    expires_at=None,
) -> list[Notification]:
    """
    Write one unread notification per recipient.

    No deduplication across calls: a user resolved for two categories in
    the same adjustment gets two rows. Rows are added one at a time and
    flushed; the caller commits.
    """
    if type not in VALID_NOTIFICATION_TYPES:
        raise ValueError(f"unknown notification type: {type}")

    created = []
    for user_id in recipients:
        n = Notification(
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            is_read=False,
            data=dict(data) if data is not None else None,
            expires_at=expires_at,
        )
        db.session.add(n)
        created.append(n)
    db.session.flush()
    return created


def _visible_query(user_id: int):
    now = utcnow()
    return db.session.query(Notification).filter(
        Notification.user_id == user_id,
        db.or_(Notification.expires_at.is_(None), Notification.expires_at > now),
    )


def list_notifications(
    user_id: int,
    *,
    page: int | None = None,
    limit: int | None = None,
    read: bool | None = None,
) -> dict:
    """Newest-first page of the user's unexpired notifications."""
    q = _visible_query(user_id)
    if read is not None:
        q = q.filter(Notification.is_read.is_(read))

    per_page = max(1, min(limit or 20, 100))
    page = max(page or 1, 1)

    total = q.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1

    rows = (
        q.order_by(Notification.created_at.desc(), Notification.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return {
        "items": [n.to_dict() for n in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def count_unread(user_id: int) -> int:
    return _visible_query(user_id).filter(Notification.is_read.is_(False)).count()


def _get_owned(notification_id: int, user_id: int) -> Notification:
    n = db.session.query(Notification).filter_by(id=notification_id).first()
    if not n:
        raise NotFoundError("Notification not found")
    if n.user_id != user_id:
        raise NotificationAccessError("Not authorized to access this notification")
    return n


def mark_read(notification_id: int, user_id: int) -> dict:
    n = _get_owned(notification_id, user_id)
    n.is_read = True
    db.session.commit()
    return n.to_dict()


def mark_all_read(user_id: int) -> int:
    updated = (
        db.session.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated


def delete_notification(notification_id: int, user_id: int) -> None:
    n = _get_owned(notification_id, user_id)
    db.session.delete(n)
    db.session.commit()


def purge_expired() -> int:
    """Delete notifications whose expiry has passed. Returns count deleted."""
    deleted = (
        db.session.query(Notification)
        .filter(Notification.expires_at.isnot(None), Notification.expires_at <= utcnow())
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted


def parse_read_filter(raw: str | None) -> bool | None:
    if raw is None or raw == "":
        return None
    lowered = raw.strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    raise ValidationError("read must be true or false")
