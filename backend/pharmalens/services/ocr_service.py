"""
OCR.space adapter – extracts printed text from a packaging photo.
API: https://ocr.space/OCRAPI (multipart POST, API key in form field).
Single attempt per call, no retries.
"""

import logging

import requests

from pharmalens.config import Config
from pharmalens.errors import ExternalServiceError

logger = logging.getLogger("pharmalens.ocr")

OCR_FAILURE_MESSAGE = "Failed to process image with OCR"


def _parsed_text(payload: dict) -> str:
    results = payload.get("ParsedResults") or []
    if not results:
        return ""
    return (results[0].get("ParsedText") or "").strip()


def extract_text(image_path: str) -> str:
    """Send the stored image to OCR.space and return the recognised text, trimmed."""
    if not Config.OCR_SPACE_API_KEY:
        logger.error("OCR_SPACE_API_KEY is not configured")
        raise ExternalServiceError(OCR_FAILURE_MESSAGE, stage="ocr")

    form = {
        "apikey": Config.OCR_SPACE_API_KEY,
        "language": Config.OCR_LANGUAGE,
        "isOverlayRequired": "false",
        "detectOrientation": "true",
        "scale": "true",
    }
    try:
        with open(image_path, "rb") as fh:
            resp = requests.post(
                Config.OCR_SPACE_URL,
                data=form,
                files={"file": fh},
                timeout=Config.OCR_TIMEOUT_SECONDS,
            )
        resp.raise_for_status()
        payload = resp.json()
    except (requests.RequestException, OSError, ValueError) as exc:
        logger.error("OCR request failed for %s: %s", image_path, exc)
        raise ExternalServiceError(OCR_FAILURE_MESSAGE, stage="ocr") from exc

    if payload.get("IsErroredOnProcessing"):
        logger.error("OCR processing error: %s", payload.get("ErrorMessage"))
        raise ExternalServiceError(OCR_FAILURE_MESSAGE, stage="ocr")

    text = _parsed_text(payload)
    logger.info("OCR extracted %d characters", len(text))
    return text
