"""
PharmaLens – Flask Application Factory
Serves the REST API, uploaded scan images and the frontend pages.
"""

import logging
from pathlib import Path

from flask import Flask, abort, send_from_directory
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from pharmalens.config import Config
from pharmalens.database import db, seed_default_users
from pharmalens.errors import register_error_handlers
from pharmalens.routes.auth import auth_bp
from pharmalens.routes.scan import scan_bp
from pharmalens.routes.dashboard import dashboard_bp
from pharmalens.middleware.auth_middleware import jwt_required_middleware
from pharmalens.middleware.request_logger import log_after_request

limiter = Limiter(key_func=get_remote_address, default_limits=[Config.RATE_LIMIT_DEFAULT])

# Path to the frontend directory (relative to the backend package)
FRONTEND_DIR = Path(__file__).resolve().parent.parent / "frontend"

# URL path -> page file under FRONTEND_DIR
PAGES = {
    "/": "index.html",
    "/login": "login-page.html",
    "/scan": "scan.html",
    "/history": "history.html",
    "/admin": "admin-dashboard.html",
    "/reset-password": "reset-password.html",
}


def create_app() -> Flask:
    Config.validate()
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = Flask(__name__)
    app.config["SECRET_KEY"] = Config.FLASK_SECRET_KEY
    app.config["SQLALCHEMY_DATABASE_URI"] = Config.DATABASE_URL
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["MAX_CONTENT_LENGTH"] = Config.MAX_UPLOAD_BYTES
    app.config["DEBUG"] = Config.APP_ENV == "development"
    app.config["RATELIMIT_ENABLED"] = Config.APP_ENV != "testing"

    # Extensions
    CORS(app, resources={r"/api/*": {"origins": "*"}})
    limiter.init_app(app)
    db.init_app(app)

    # Create tables if they don't already exist
    with app.app_context():
        from pharmalens.models import models as _models  # noqa: F401 – ensure all models are registered
        db.create_all()
        if Config.SEED_DEFAULT_USERS:
            seed_default_users(Config.DEFAULT_ADMIN_PASSWORD, Config.DEFAULT_USER_PASSWORD)

    # Middleware
    app.before_request(jwt_required_middleware)
    app.after_request(log_after_request)
    register_error_handlers(app)

    # Blueprints
    app.register_blueprint(auth_bp, url_prefix="/api/auth")
    app.register_blueprint(scan_bp, url_prefix="/api/scan")
    app.register_blueprint(dashboard_bp, url_prefix="/api/dashboard")

    # Health check
    @app.route("/api/health")
    def health():
        return {"status": "ok", "service": "pharmalens"}

    # ---------- Uploaded scan images ----------
    @app.route("/uploads/<path:filename>")
    def serve_upload(filename):
        return send_from_directory(Config.UPLOAD_FOLDER, filename)

    # ---------- Frontend pages ----------
    def _serve_page(page):
        if not (FRONTEND_DIR / page).is_file():
            abort(404)
        return send_from_directory(str(FRONTEND_DIR), page)

    for url, page in PAGES.items():
        endpoint = "page_" + (url.strip("/").replace("-", "_") or "index")
        app.add_url_rule(url, endpoint, lambda page=page: _serve_page(page))

    return app
