from __future__ import annotations

from flask import Blueprint, jsonify, request, g

from ..decorators import require_auth
from ..services import notification_service
from ..services.notification_service import NotificationAccessError
from ..validation import NotFoundError, ValidationError

notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")


@notifications_bp.route("", methods=["GET"])
@require_auth
def list_notifications():
    try:
        read = notification_service.parse_read_filter(request.args.get("read"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    result = notification_service.list_notifications(
        g.current_user.id,
        page=request.args.get("page", type=int),
        limit=request.args.get("limit", type=int),
        read=read,
    )
    return jsonify(result)


@notifications_bp.route("/count", methods=["GET"])
@require_auth
def unread_count():
    return jsonify({"count": notification_service.count_unread(g.current_user.id)})


@notifications_bp.route("/read-all", methods=["PUT"])
@require_auth
def mark_all_read():
    updated = notification_service.mark_all_read(g.current_user.id)
    return jsonify({"message": "All notifications marked as read", "updated": updated})


@notifications_bp.route("/<int:notification_id>/read", methods=["PUT"])
@require_auth
def mark_read(notification_id: int):
    try:
        return jsonify(notification_service.mark_read(notification_id, g.current_user.id))
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except NotificationAccessError as e:
        return jsonify({"error": str(e)}), 403


@notifications_bp.route("/<int:notification_id>", methods=["DELETE"])
@require_auth
def delete_notification(notification_id: int):
    try:
        notification_service.delete_notification(notification_id, g.current_user.id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except NotificationAccessError as e:
        return jsonify({"error": str(e)}), 403
    return jsonify({"message": "Notification deleted successfully"})
