"""
Scan routes – submit a packaging photo, browse own scan history.
"""

from flask import Blueprint, request, jsonify

from pharmalens.middleware.auth_middleware import get_current_user
from pharmalens.services import scan_service

scan_bp = Blueprint("scan", __name__)


@scan_bp.route("", methods=["POST"])
@scan_bp.route("/", methods=["POST"])
def submit_scan():
    """
    Multipart upload.
    Fields: image (file, required), scan_date (ISO-8601, optional).
    """
    user = get_current_user()
    result = scan_service.submit_scan(
        user["id"],
        request.files.get("image"),
        request.form.get("scan_date"),
    )
    return jsonify({
        "success": True,
        "scanId": result.record_id,
        "ocrResult": result.ocr_text,
        "aiAnalysis": result.analysis_text,
        "message": "Image processed successfully",
    }), 200


@scan_bp.route("/history", methods=["GET"])
def history():
    scans = scan_service.list_history(get_current_user()["id"])
    return jsonify({"history": [s.to_dict() for s in scans]}), 200


@scan_bp.route("/<int:scan_id>", methods=["GET"])
def get_scan(scan_id):
    scan = scan_service.get_scan(get_current_user()["id"], scan_id)
    return jsonify({"scan": scan.to_dict()}), 200
