"""
Auth service – registration, login, bearer tokens and password resets.
Passwords are bcrypt-hashed; tokens are HS256 JWTs carrying {id, username, role}.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt as pyjwt
from sqlalchemy.exc import SQLAlchemyError

from pharmalens.config import Config
from pharmalens.database import db
from pharmalens.errors import AuthError, ConflictError, ForbiddenError, NotFoundError, ValidationError
from pharmalens.models.models import PasswordResetToken, User, ROLE_USER

logger = logging.getLogger("pharmalens.auth")

MIN_PASSWORD_LENGTH = 6
# bcrypt only hashes the first 72 bytes and rejects longer input
MAX_PASSWORD_BYTES = 72
INVALID_CREDENTIALS = "Invalid username or password"
RESET_REQUESTED_MESSAGE = "If the email is registered, a password reset link will be sent to it."
RESET_DONE_MESSAGE = "Password has been reset. Please log in with your new password."


def _text(value) -> str:
    """Coerce an optional JSON field to a string; anything but a string or null is malformed."""
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValidationError("Invalid request")
    return value


def _check_new_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode()) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed stored hash or over-long password
        return False


def issue_token(user: User) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "exp": now + timedelta(hours=Config.JWT_EXPIRES_HOURS),
        "iat": now,
    }
    return pyjwt.encode(payload, Config.JWT_SECRET, algorithm=Config.JWT_ALGORITHM)


def verify_token(token: str | None) -> dict:
    """Return the embedded claims, or raise AuthError (missing) / ForbiddenError (bad)."""
    if not token:
        raise AuthError("Access token required")
    try:
        claims = pyjwt.decode(token, Config.JWT_SECRET, algorithms=[Config.JWT_ALGORITHM])
    except pyjwt.ExpiredSignatureError:
        raise ForbiddenError("Token has expired")
    except pyjwt.InvalidTokenError:
        raise ForbiddenError("Invalid token")
    if not isinstance(claims.get("id"), int):
        raise ForbiddenError("Invalid token")
    return claims


def register(username: str, email: str, password: str) -> tuple[str, dict]:
    """Create a regular user account and return (token, public user view)."""
    username = _text(username).strip()
    email = _text(email).strip()
    password = _text(password)
    if not username or not email or not password:
        raise ValidationError("All fields are required")
    _check_new_password(password)

    existing = User.query.filter((User.username == username) | (User.email == email)).first()
    if existing:
        raise ConflictError("Username or email already exists")

    user = User(username=username, email=email, password_hash=hash_password(password), role=ROLE_USER)
    db.session.add(user)
    db.session.commit()
    logger.info("Registered user id=%s", user.id)

    return issue_token(user), user.to_dict()


def login(username_or_email: str, password: str) -> tuple[str, dict]:
    username_or_email = _text(username_or_email)
    password = _text(password)
    if not username_or_email or not password:
        raise ValidationError("Username and password are required")

    user = User.query.filter(
        (User.username == username_or_email) | (User.email == username_or_email)
    ).first()
    # Same message for unknown user and wrong password
    if not user or not check_password(password, user.password_hash):
        raise AuthError(INVALID_CREDENTIALS)

    return issue_token(user), user.to_dict()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def request_password_reset(email: str) -> tuple[str, str | None]:
    """
    Persist a one-hour reset token when the email is known.
    Returns (generic message, token or None); the message never reveals
    whether the account exists.
    """
    email = _text(email).strip()
    if not email:
        raise ValidationError("Email is required")

    user = User.query.filter_by(email=email).first()
    if not user:
        logger.info("Password reset requested for unknown email")
        return RESET_REQUESTED_MESSAGE, None

    token = secrets.token_hex(32)
    db.session.add(PasswordResetToken(
        user_id=user.id,
        token=token,
        expires_at=datetime.utcnow() + timedelta(minutes=Config.RESET_TOKEN_TTL_MINUTES),
    ))
    db.session.commit()
    logger.info("Issued password reset token for user id=%s", user.id)
    return RESET_REQUESTED_MESSAGE, token


def reset_password(token: str, new_password: str) -> str:
    token = _text(token)
    new_password = _text(new_password)
    if not token or not new_password:
        raise ValidationError("Token and new password are required")
    _check_new_password(new_password)

    reset = PasswordResetToken.query.filter_by(token=token).first()
    if not reset or not reset.is_usable():
        raise ValidationError("Invalid or expired token")

    user = db.session.get(User, reset.user_id)
    if not user:
        raise ValidationError("Invalid or expired token")

    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.utcnow()
    db.session.commit()

    # The password change above stands even if this second write fails
    try:
        reset.used = True
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Failed to mark reset token %s as used: %s", reset.id, exc)

    logger.info("Password reset for user id=%s", user.id)
    return RESET_DONE_MESSAGE
