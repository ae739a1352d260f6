"""
Scan pipeline – upload → OCR → AI analysis → persist.
Strictly sequential, one OCR call and one AI call per scan, no retries.
Uploaded images are kept on disk whatever the outcome so history can show them.
"""

import logging
import os
import secrets
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import SQLAlchemyError

from pharmalens.config import Config
from pharmalens.database import db
from pharmalens.errors import NotFoundError, StorageError, ValidationError
from pharmalens.models.models import ScanRecord
from pharmalens.services import analysis_service, ocr_service

logger = logging.getLogger("pharmalens.scan")

HISTORY_LIMIT = 50


@dataclass
class ScanResult:
    record_id: int
    ocr_text: str
    analysis_text: str


def _extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower().lstrip(".")


def is_allowed_image(filename: str, mimetype: str | None) -> bool:
    """Both the extension and the declared MIME type must be on the image allow-list."""
    if not filename or "." not in filename:
        return False
    return (
        _extension(filename) in Config.ALLOWED_IMAGE_EXTENSIONS
        and (mimetype or "").lower() in Config.ALLOWED_IMAGE_MIMETYPES
    )


def store_upload(image_file) -> tuple[str, str]:
    """Validate and save an uploaded image; returns (stored filename, absolute path)."""
    if image_file is None or not image_file.filename:
        raise ValidationError("No image file provided")
    # Only the extension of the client name is used; the stored name is generated
    original = image_file.filename
    if not is_allowed_image(original, image_file.mimetype):
        raise ValidationError("Only image files are allowed")

    os.makedirs(Config.UPLOAD_FOLDER, exist_ok=True)
    stored_name = f"image-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}.{_extension(original)}"
    path = os.path.join(Config.UPLOAD_FOLDER, stored_name)
    image_file.save(path)
    return stored_name, path


def resolve_scan_date(client_value: str | None, now: datetime | None = None) -> datetime:
    """
    Pick the timestamp stored on a scan.

    Everything is stored as naive UTC. A client-supplied ISO-8601 value is
    converted using its own offset, or CLIENT_UTC_OFFSET_HOURS when it has
    none, and kept only when it lies within SCAN_DATE_MAX_SKEW_HOURS of
    server time; anything else falls back to server time.
    """
    now = now or datetime.utcnow()
    if not client_value:
        return now
    try:
        parsed = datetime.fromisoformat(client_value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Ignoring unparseable scan_date %r", client_value)
        return now
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone(timedelta(hours=Config.CLIENT_UTC_OFFSET_HOURS)))
    parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    if abs(parsed - now) > timedelta(hours=Config.SCAN_DATE_MAX_SKEW_HOURS):
        logger.warning("Ignoring out-of-range scan_date %r", client_value)
        return now
    return parsed


def submit_scan(user_id: int, image_file, client_scan_date: str | None = None) -> ScanResult:
    filename, path = store_upload(image_file)

    logger.info("Processing OCR for user id=%s file=%s", user_id, filename)
    ocr_text = ocr_service.extract_text(path)
    if not ocr_text:
        raise ValidationError("No text found in image")

    logger.info("Analyzing OCR text with AI for user id=%s", user_id)
    analysis_text = analysis_service.analyze_text(ocr_text)

    record = ScanRecord(
        user_id=user_id,
        image_filename=filename,
        ocr_result=ocr_text,
        ai_analysis=analysis_text,
        scan_date=resolve_scan_date(client_scan_date),
    )
    try:
        db.session.add(record)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Failed to save scan for user id=%s: %s", user_id, exc)
        raise StorageError("Failed to save scan result") from exc

    return ScanResult(record_id=record.id, ocr_text=ocr_text, analysis_text=analysis_text)


def list_history(user_id: int, limit: int = HISTORY_LIMIT) -> list[ScanRecord]:
    return (
        ScanRecord.query
        .filter_by(user_id=user_id)
        .order_by(ScanRecord.scan_date.desc(), ScanRecord.id.desc())
        .limit(limit)
        .all()
    )


def get_scan(user_id: int, scan_id: int) -> ScanRecord:
    """Owner-only lookup; someone else's scan is reported as missing."""
    scan = ScanRecord.query.filter_by(id=scan_id, user_id=user_id).first()
    if not scan:
        raise NotFoundError("Scan result not found")
    return scan
