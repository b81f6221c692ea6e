# Overview: Flask API routes for the caller's own profile, settings and password.

from flask import Blueprint, request, jsonify, g

from ..services import auth_service, settings_service
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("/profile")
@require_auth
def get_profile():
    return jsonify(g.current_user.to_dict()), 200


@users_bp.put("/profile")
@require_auth
def update_profile():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_profile(g.current_user.id, data)
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify(user.to_dict()), 200


@users_bp.get("/settings")
@require_auth
def get_settings():
    return jsonify(settings_service.get_user_settings(g.current_user.id)), 200


@users_bp.put("/settings")
@require_auth
def update_settings():
    """
    Partial update of preferences.

    Body mirrors the GET shape, e.g.
    {"push": {"stock_alerts": true}, "low_stock_alerts": false}
    """
    data = request.get_json(silent=True) or {}
    try:
        return jsonify(settings_service.update_user_settings(g.current_user.id, data)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@users_bp.put("/change-password")
@require_auth
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password")
    new_password = data.get("new_password")
    if not current_password or not new_password:
        return jsonify({"error": "current_password and new_password required"}), 400

    try:
        auth_service.change_password(g.current_user.id, current_password, new_password)
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400

    return jsonify({"message": "Password updated successfully"}), 200
