"""
Authentication middleware – JWT bearer tokens on every protected /api/* route.
Admin-only endpoints additionally use the @admin_required decorator.
"""

from functools import wraps
from flask import request, g, jsonify

from pharmalens.database import db
from pharmalens.errors import AuthError
from pharmalens.models.models import User, ROLE_ADMIN
from pharmalens.services import auth_service

# Routes that do not require authentication
PUBLIC_PATHS = (
    "/api/auth/register",
    "/api/auth/login",
    "/api/auth/forgot-password",
    "/api/auth/reset-password",
    "/api/health",
)


def _bearer_token() -> str | None:
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme != "Bearer" or not token.strip():
        return None
    return token.strip()


def jwt_required_middleware():
    """Before-request hook: validates the bearer token and stores its claims on g."""
    if request.method == "OPTIONS":
        return None

    path = request.path.rstrip("/") or "/"
    if not path.startswith("/api/"):
        return None
    if path in PUBLIC_PATHS:
        return None

    try:
        claims = auth_service.verify_token(_bearer_token())
    except AuthError as exc:
        return jsonify({"error": exc.message}), exc.status_code

    # Tokens outlive deleted accounts; reject them before any work is done
    if db.session.get(User, claims["id"]) is None:
        return jsonify({"error": "User account not found."}), 403

    g.current_user = claims
    return None


def get_current_user() -> dict:
    """Convenience accessor for the authenticated user's token claims."""
    return getattr(g, "current_user", None)


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        user = get_current_user()
        if not user or user.get("role") != ROLE_ADMIN:
            return jsonify({"error": "Admin access required"}), 403
        return view(*args, **kwargs)
    return wrapper
