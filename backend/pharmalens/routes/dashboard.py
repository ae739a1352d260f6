"""
Dashboard routes – stats for everyone, user and scan management for admins.
"""

from flask import Blueprint, request, jsonify

from pharmalens.middleware.auth_middleware import admin_required, get_current_user
from pharmalens.services import dashboard_service

dashboard_bp = Blueprint("dashboard", __name__)


@dashboard_bp.route("/stats", methods=["GET"])
def stats():
    """Platform-wide stats for admins, own scan counts for regular users."""
    return jsonify({"stats": dashboard_service.stats_for(get_current_user())}), 200


@dashboard_bp.route("/recent-scans", methods=["GET"])
def recent_scans():
    return jsonify({"recentScans": dashboard_service.recent_scans(get_current_user())}), 200


@dashboard_bp.route("/users", methods=["GET"])
@admin_required
def list_users():
    return jsonify({"users": dashboard_service.list_users()}), 200


@dashboard_bp.route("/users/<int:user_id>", methods=["DELETE"])
@admin_required
def delete_user(user_id):
    dashboard_service.delete_user(get_current_user()["id"], user_id)
    return jsonify({"message": "User deleted successfully"}), 200


@dashboard_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@admin_required
def update_role(user_id):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}
    dashboard_service.change_role(get_current_user()["id"], user_id, data.get("role"))
    return jsonify({"message": "User role updated successfully"}), 200


@dashboard_bp.route("/all-scans", methods=["GET"])
@admin_required
def all_scans():
    return jsonify({"scans": dashboard_service.all_scans()}), 200
