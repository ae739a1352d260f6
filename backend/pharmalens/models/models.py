"""
SQLAlchemy ORM models – users, scan history and password reset tokens.
"""

from datetime import datetime
from pharmalens.database import db

ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)


def _iso(value):
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint("role IN ('user', 'admin')", name="ck_users_role"),
    )

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    username = db.Column(db.String(150), nullable=False, unique=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(10), nullable=False, default=ROLE_USER)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow)

    scans = db.relationship("ScanRecord", backref="user", lazy="dynamic", passive_deletes=True)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role,
            "created_at": _iso(self.created_at),
        }


class ScanRecord(db.Model):
    __tablename__ = "scan_history"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    image_filename = db.Column(db.String(255), nullable=False)
    ocr_result = db.Column(db.Text)
    ai_analysis = db.Column(db.Text)
    scan_date = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self, include_username=False):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "image_filename": self.image_filename,
            "ocr_result": self.ocr_result,
            "ai_analysis": self.ai_analysis,
            "scan_date": _iso(self.scan_date),
        }
        if include_username:
            data["username"] = self.user.username if self.user else None
        return data


class PasswordResetToken(db.Model):
    __tablename__ = "password_reset_tokens"

    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    token = db.Column(db.String(128), nullable=False, unique=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    used = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    user = db.relationship("User")

    def is_usable(self, now: datetime | None = None) -> bool:
        """A token authorizes one reset: unused and not yet expired."""
        now = now or datetime.utcnow()
        return not self.used and self.expires_at > now
