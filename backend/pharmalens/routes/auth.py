"""
Authentication routes – registration, login, profile and password reset.
Returns JWT tokens for authenticated sessions.
"""

from flask import Blueprint, request, jsonify

from pharmalens.config import Config
from pharmalens.middleware.auth_middleware import get_current_user
from pharmalens.services import auth_service

auth_bp = Blueprint("auth", __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


@auth_bp.route("/register", methods=["POST"])
def register():
    """Register a new (regular) user account."""
    data = _json_body()
    token, user = auth_service.register(data.get("username"), data.get("email"), data.get("password"))
    return jsonify({"message": "User created successfully", "token": token, "user": user}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """Authenticate by username or email and return a JWT."""
    data = _json_body()
    token, user = auth_service.login(data.get("username"), data.get("password"))
    return jsonify({"message": "Login successful", "token": token, "user": user}), 200


@auth_bp.route("/me", methods=["GET"])
def me():
    user = auth_service.get_user(get_current_user()["id"])
    return jsonify({"user": user.to_dict()}), 200


@auth_bp.route("/logout", methods=["POST"])
def logout():
    # Tokens are stateless; the client discards its copy
    return jsonify({"message": "Logged out successfully"}), 200


@auth_bp.route("/forgot-password", methods=["POST"])
def forgot_password():
    data = _json_body()
    message, token = auth_service.request_password_reset(data.get("email"))
    body = {"message": message}
    if token and Config.EXPOSE_RESET_TOKEN:
        body["resetToken"] = token
        body["resetUrl"] = f"{Config.PUBLIC_BASE_URL.rstrip('/')}/reset-password?token={token}"
    return jsonify(body), 200


@auth_bp.route("/reset-password", methods=["POST"])
def reset_password():
    data = _json_body()
    message = auth_service.reset_password(data.get("token"), data.get("newPassword"))
    return jsonify({"message": message}), 200
