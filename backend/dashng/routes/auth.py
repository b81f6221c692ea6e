# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/dashng/routes/auth.py
"""
Authentication API routes

- Self-registration creates customer accounts only; staff accounts are
  created with `flask users create`.
- Session management with token-based auth
"""

from flask import Blueprint, request, jsonify, current_app, g
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..services import auth_service
from ..services import session_service
from ..services.auth_service import PasswordValidationError
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

REGISTER_FIELDS = {"username", "email", "password", "first_name", "last_name", "phone"}


@auth_bp.post("/register")
def register_route():
    """
    Register a customer account and log it in.

    Returns user info and session token on success.
    """
    data = request.get_json(silent=True) or {}

    unknown = sorted(set(data) - REGISTER_FIELDS)
    if unknown:
        return jsonify({"error": f"Field not allowed: {', '.join(unknown)}"}), 400

    if not all([data.get("username"), data.get("email"), data.get("password")]):
        return jsonify({"error": "username, email and password required"}), 400

    try:
        user = auth_service.create_user(
            username=data["username"],
            email=data["email"],
            password=data["password"],
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            phone=data.get("phone"),
        )
        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except (ValidationError, PasswordValidationError) as e:
        return jsonify({"error": str(e)}), 400
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "user": user.to_dict(),
        "token": token,
        "session": session.to_dict(),
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in Authorization header for protected routes.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username") or data.get("email")
        password = data.get("password")

        if not all([username, password]):
            return jsonify({"error": "username/email and password required"}), 400

        user = auth_service.authenticate(username, password)
        if not user:
            return jsonify({"error": "Invalid credentials"}), 401

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        return jsonify({
            "user": user.to_dict(),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/user")
@require_auth
def current_user_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the token presented with this request."""
    session_service.revoke_session(g.session_token)
    return jsonify({"message": "Logged out successfully"}), 200
