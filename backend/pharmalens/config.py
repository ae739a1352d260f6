"""
PharmaLens Backend – Configuration Loader
Loads all secrets and settings from .env via environment variables.
No secret may be hard-coded anywhere in the codebase.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load .env from project root
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(dotenv_path=_env_path)

BACKEND_DIR = Path(__file__).resolve().parent.parent


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    """Base configuration – values sourced exclusively from environment."""

    # --- Secrets ---
    JWT_SECRET: str = os.environ.get("JWT_SECRET", "")
    FLASK_SECRET_KEY: str = os.environ.get("FLASK_SECRET_KEY", "")
    OCR_SPACE_API_KEY: str = os.environ.get("OCR_SPACE_API_KEY", "")
    OPENAI_API_KEY: str = os.environ.get("OPENAI_API_KEY", "")

    # --- Database ---
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "sqlite:///pharmalens.db")

    # --- OCR (OCR.space) ---
    OCR_SPACE_URL: str = os.environ.get("OCR_SPACE_URL", "https://api.ocr.space/parse/image")
    OCR_LANGUAGE: str = os.environ.get("OCR_LANGUAGE", "eng")
    OCR_TIMEOUT_SECONDS: int = int(os.environ.get("OCR_TIMEOUT_SECONDS", "30"))

    # --- AI analysis (any OpenAI-compatible endpoint) ---
    AI_BASE_URL: str = os.environ.get("AI_BASE_URL", "")
    AI_MODEL_NAME: str = os.environ.get("AI_MODEL_NAME", "gpt-4o-mini")
    AI_MAX_TOKENS: int = int(os.environ.get("AI_MAX_TOKENS", "1000"))
    AI_TEMPERATURE: float = float(os.environ.get("AI_TEMPERATURE", "0.3"))
    AI_TIMEOUT_SECONDS: float = float(os.environ.get("AI_TIMEOUT_SECONDS", "60"))

    # --- Auth ---
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_HOURS: int = int(os.environ.get("JWT_EXPIRES_HOURS", "24"))
    RESET_TOKEN_TTL_MINUTES: int = int(os.environ.get("RESET_TOKEN_TTL_MINUTES", "60"))
    PUBLIC_BASE_URL: str = os.environ.get("PUBLIC_BASE_URL", "http://localhost:3000")
    # Debug only: echo the reset token/URL back from /forgot-password
    EXPOSE_RESET_TOKEN: bool = _get_bool("EXPOSE_RESET_TOKEN", default=False)

    # --- Seed accounts ---
    SEED_DEFAULT_USERS: bool = _get_bool("SEED_DEFAULT_USERS", default=True)
    DEFAULT_ADMIN_PASSWORD: str = os.environ.get("DEFAULT_ADMIN_PASSWORD", "admin123")
    DEFAULT_USER_PASSWORD: str = os.environ.get("DEFAULT_USER_PASSWORD", "user123")

    # --- Uploads ---
    UPLOAD_FOLDER: str = os.environ.get("UPLOAD_FOLDER", str(BACKEND_DIR / "uploads"))
    MAX_UPLOAD_BYTES: int = int(os.environ.get("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    ALLOWED_IMAGE_EXTENSIONS: frozenset = frozenset({"jpg", "jpeg", "png", "gif"})
    ALLOWED_IMAGE_MIMETYPES: frozenset = frozenset({"image/jpeg", "image/jpg", "image/png", "image/gif"})

    # Client-supplied scan_date is only trusted within this window of server time
    SCAN_DATE_MAX_SKEW_HOURS: int = int(os.environ.get("SCAN_DATE_MAX_SKEW_HOURS", "36"))
    # Offset assumed for client timestamps sent without one (WIB, UTC+7)
    CLIENT_UTC_OFFSET_HOURS: float = float(os.environ.get("CLIENT_UTC_OFFSET_HOURS", "7"))

    # --- App ---
    APP_ENV: str = os.environ.get("APP_ENV", "development")
    DEBUG: bool = APP_ENV == "development"
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # --- Rate limiting ---
    RATE_LIMIT_DEFAULT: str = os.environ.get("RATE_LIMIT_DEFAULT", "60/minute")

    # --- Validation ---
    @classmethod
    def validate(cls) -> None:
        """Raise on missing critical environment variables."""
        required = ["FLASK_SECRET_KEY", "JWT_SECRET"]
        missing = [k for k in required if not getattr(cls, k)]
        if missing:
            raise EnvironmentError(
                f"Missing required environment variables: {', '.join(missing)}. "
                "Ensure a .env file exists with all required values."
            )
