"""
Pytest configuration & fixtures for PharmaLens backend tests.

Key design decisions:
  - Uses sqlite:///:memory: for speed and isolation.
  - Uploads go to a throwaway temp directory.
  - OCR and AI calls are always mocked; no test touches the network.
  - The default admin/testuser accounts are seeded by create_app().
"""

import io
import os
import sys
import tempfile
import uuid
from unittest import mock

import pytest

# ── 1. Ensure backend package is importable ──
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

# ── 2. Set test environment BEFORE anything else ──
UPLOAD_DIR = tempfile.mkdtemp(prefix="pharmalens-uploads-")
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["FLASK_SECRET_KEY"] = "test-secret-key"
os.environ["JWT_SECRET"] = "test-jwt-secret"
os.environ["OCR_SPACE_API_KEY"] = "test-ocr-key"
os.environ["OPENAI_API_KEY"] = "test-key-not-real"
os.environ["UPLOAD_FOLDER"] = UPLOAD_DIR
os.environ["APP_ENV"] = "testing"
os.environ["SEED_DEFAULT_USERS"] = "true"
os.environ["DEFAULT_ADMIN_PASSWORD"] = "admin123"
os.environ["DEFAULT_USER_PASSWORD"] = "user123"

# ── 3. NOW safe to import application modules ──
from pharmalens.main import create_app
from pharmalens.database import db as _db


# ═══════════════════════════════════════════
# FIXTURES
# ═══════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """Create application for testing."""
    application = create_app()
    application.config["TESTING"] = True
    return application


@pytest.fixture
def client(app):
    """Flask test client with database ready."""
    with app.test_client() as c:
        with app.app_context():
            yield c
            _db.session.rollback()


def register_user(client, username=None, password="secret1"):
    """Register a fresh user; returns (auth headers, user dict)."""
    username = username or f"user_{uuid.uuid4().hex[:8]}"
    resp = client.post("/api/auth/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
    })
    assert resp.status_code == 201, resp.get_json()
    data = resp.get_json()
    return {"Authorization": f"Bearer {data['token']}"}, data["user"]


@pytest.fixture
def user_auth(client):
    """(headers, user) for a freshly registered regular user."""
    return register_user(client)


@pytest.fixture
def admin_auth(client):
    """(headers, user) for the seeded admin account."""
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "admin123"})
    assert resp.status_code == 200
    data = resp.get_json()
    return {"Authorization": f"Bearer {data['token']}"}, data["user"]


@pytest.fixture
def mock_pipeline():
    """Patch the OCR and AI clients used by the scan pipeline."""
    with mock.patch("pharmalens.services.ocr_service.extract_text") as ocr, \
            mock.patch("pharmalens.services.analysis_service.analyze_text") as ai:
        ocr.return_value = "Paracetamol 500mg"
        ai.return_value = "1. Nama Obat dan Kandungan Aktif: Paracetamol 500 mg"
        yield ocr, ai


def image_upload(name="box.png", content_type="image/png", payload=b"\x89PNG\r\n\x1a\nfake"):
    """Multipart form data for POST /api/scan."""
    return {"image": (io.BytesIO(payload), name, content_type)}
