"""
Service-level tests – OCR and AI client error mapping, prompt shape,
scan-date policy and model helpers. External APIs are always mocked.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest import mock

import pytest
import requests
from openai import OpenAIError

from pharmalens.errors import ExternalServiceError
from pharmalens.models.models import PasswordResetToken, ScanRecord, User
from pharmalens.services import analysis_service, ocr_service
from pharmalens.services.scan_service import is_allowed_image, resolve_scan_date


@pytest.fixture
def image_file(tmp_path):
    path = tmp_path / "box.png"
    path.write_bytes(b"\x89PNG\r\n\x1a\nfake")
    return str(path)


def _ocr_response(payload, status=200):
    resp = mock.Mock()
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    resp.status_code = status
    return resp


# ═══════════════════════════════════════════
# OCR CLIENT
# ═══════════════════════════════════════════

class TestOcrService:
    def test_returns_trimmed_text(self, image_file):
        payload = {"IsErroredOnProcessing": False, "ParsedResults": [{"ParsedText": "  Paracetamol 500mg\r\n"}]}
        with mock.patch("pharmalens.services.ocr_service.requests.post", return_value=_ocr_response(payload)) as post:
            assert ocr_service.extract_text(image_file) == "Paracetamol 500mg"

        _, kwargs = post.call_args
        assert kwargs["timeout"] == 30
        assert kwargs["data"]["apikey"] == "test-ocr-key"
        assert kwargs["data"]["language"] == "eng"
        assert "file" in kwargs["files"]

    def test_no_parsed_results_is_empty_text(self, image_file):
        payload = {"IsErroredOnProcessing": False, "ParsedResults": []}
        with mock.patch("pharmalens.services.ocr_service.requests.post", return_value=_ocr_response(payload)):
            assert ocr_service.extract_text(image_file) == ""

    def test_processing_error_raises(self, image_file):
        payload = {"IsErroredOnProcessing": True, "ErrorMessage": ["bad image"]}
        with mock.patch("pharmalens.services.ocr_service.requests.post", return_value=_ocr_response(payload)):
            with pytest.raises(ExternalServiceError) as exc_info:
                ocr_service.extract_text(image_file)
        assert exc_info.value.stage == "ocr"
        assert exc_info.value.status_code == 500

    def test_transport_error_raises(self, image_file):
        with mock.patch("pharmalens.services.ocr_service.requests.post",
                        side_effect=requests.Timeout("timed out")):
            with pytest.raises(ExternalServiceError) as exc_info:
                ocr_service.extract_text(image_file)
        # Client-facing message carries no internal detail
        assert "timed out" not in exc_info.value.message


# ═══════════════════════════════════════════
# AI ANALYSIS CLIENT
# ═══════════════════════════════════════════

def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


class TestAnalysisService:
    def test_prompt_embeds_text_and_six_sections(self):
        prompt = analysis_service.build_prompt("Amoxicillin 500mg")
        assert '"Amoxicillin 500mg"' in prompt
        for i, (title, _) in enumerate(analysis_service.ANALYSIS_SECTIONS, start=1):
            assert f"{i}. {title}:" in prompt
        assert len(analysis_service.ANALYSIS_SECTIONS) == 6
        assert "bahasa Indonesia" in prompt

    def test_analyze_text_uses_bounded_low_temperature_call(self):
        client = mock.Mock()
        client.chat.completions.create.return_value = _completion("  Hasil analisis  ")
        with mock.patch.object(analysis_service, "_get_client", return_value=client):
            assert analysis_service.analyze_text("Paracetamol 500mg") == "Hasil analisis"

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["max_tokens"] == 1000
        assert kwargs["temperature"] == 0.3
        assert "Paracetamol 500mg" in kwargs["messages"][0]["content"]

    def test_sdk_error_raises(self):
        client = mock.Mock()
        client.chat.completions.create.side_effect = OpenAIError("quota exceeded")
        with mock.patch.object(analysis_service, "_get_client", return_value=client):
            with pytest.raises(ExternalServiceError) as exc_info:
                analysis_service.analyze_text("Paracetamol")
        assert exc_info.value.stage == "analysis"
        assert "quota" not in exc_info.value.message

    def test_empty_completion_raises(self):
        client = mock.Mock()
        client.chat.completions.create.return_value = _completion("   ")
        with mock.patch.object(analysis_service, "_get_client", return_value=client):
            with pytest.raises(ExternalServiceError):
                analysis_service.analyze_text("Paracetamol")


# ═══════════════════════════════════════════
# SCAN PIPELINE HELPERS
# ═══════════════════════════════════════════

class TestScanHelpers:
    @pytest.mark.parametrize("filename,mimetype,expected", [
        ("box.png", "image/png", True),
        ("box.JPG", "image/jpeg", True),
        ("box.gif", "image/gif", True),
        ("фото.jpg", "image/jpeg", True),
        ("box.png", "text/plain", False),
        ("box.exe", "image/png", False),
        ("box", "image/png", False),
        ("", "image/png", False),
    ])
    def test_allowed_image(self, filename, mimetype, expected):
        assert is_allowed_image(filename, mimetype) is expected

    def test_scan_date_defaults_to_server_time(self):
        now = datetime(2025, 3, 1, 12, 0, 0)
        assert resolve_scan_date(None, now=now) == now
        assert resolve_scan_date("", now=now) == now

    def test_scan_date_without_offset_read_as_wib(self):
        now = datetime(2025, 3, 1, 12, 0, 0)
        assert resolve_scan_date("2025-03-01T19:00:00", now=now) == datetime(2025, 3, 1, 12, 0, 0)
        assert resolve_scan_date("2025-03-02T06:30:00", now=now) == datetime(2025, 3, 1, 23, 30, 0)

    def test_scan_date_with_offset_normalised_to_utc(self):
        now = datetime(2025, 3, 1, 12, 0, 0)
        assert resolve_scan_date("2025-03-01T19:00:00+07:00", now=now) == datetime(2025, 3, 1, 12, 0, 0)
        assert resolve_scan_date("2025-03-01T12:00:00Z", now=now) == datetime(2025, 3, 1, 12, 0, 0)

    @pytest.mark.parametrize("value", ["yesterday", "2020-01-01T00:00:00", "2030-01-01T00:00:00"])
    def test_scan_date_rejected_values_fall_back(self, value):
        now = datetime(2025, 3, 1, 12, 0, 0)
        assert resolve_scan_date(value, now=now) == now


# ═══════════════════════════════════════════
# MODELS
# ═══════════════════════════════════════════

class TestModels:
    def test_reset_token_usable(self):
        now = datetime(2025, 3, 1, 12, 0, 0)
        token = PasswordResetToken(token="abc", expires_at=now + timedelta(minutes=5), used=False)
        assert token.is_usable(now)

    def test_reset_token_used_or_expired(self):
        now = datetime(2025, 3, 1, 12, 0, 0)
        used = PasswordResetToken(token="a", expires_at=now + timedelta(minutes=5), used=True)
        expired = PasswordResetToken(token="b", expires_at=now - timedelta(seconds=1), used=False)
        assert not used.is_usable(now)
        assert not expired.is_usable(now)

    def test_user_public_view_hides_hash(self):
        user = User(id=7, username="bob", email="bob@example.com", password_hash="x", role="user")
        data = user.to_dict()
        assert data["username"] == "bob"
        assert "password_hash" not in data
        assert not user.is_admin

    def test_scan_record_to_dict(self):
        scan = ScanRecord(id=3, user_id=7, image_filename="image-1.png",
                          ocr_result="Ibuprofen", ai_analysis="Analisis",
                          scan_date=datetime(2025, 3, 1, 8, 30))
        data = scan.to_dict()
        assert data["scan_date"] == "2025-03-01T08:30:00"
        assert data["ocr_result"] == "Ibuprofen"
