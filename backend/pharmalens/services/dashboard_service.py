"""
Dashboard queries – role-scoped stats, scan listings and admin user management.
All filters go through the ORM as bound parameters.
"""

import logging
from datetime import datetime, timedelta

from pharmalens.database import db
from pharmalens.errors import NotFoundError, ValidationError
from pharmalens.models.models import PasswordResetToken, ScanRecord, User, ROLES, ROLE_ADMIN, ROLE_USER

logger = logging.getLogger("pharmalens.dashboard")

RECENT_SCANS_LIMIT = 10
ALL_SCANS_LIMIT = 100


def _day_bounds(now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return (start of today, start of the 7-day window)."""
    now = now or datetime.utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return today, today - timedelta(days=7)


def user_stats(user_id: int, now: datetime | None = None) -> dict:
    today, week_start = _day_bounds(now)
    own = ScanRecord.query.filter(ScanRecord.user_id == user_id)
    return {
        "myScans": own.count(),
        "todayScans": own.filter(ScanRecord.scan_date >= today).count(),
        "thisWeekScans": own.filter(ScanRecord.scan_date >= week_start).count(),
    }


def admin_stats(now: datetime | None = None) -> dict:
    today, week_start = _day_bounds(now)
    return {
        "totalUsers": User.query.filter(User.role == ROLE_USER).count(),
        "totalScans": ScanRecord.query.count(),
        "todayScans": ScanRecord.query.filter(ScanRecord.scan_date >= today).count(),
        "thisWeekScans": ScanRecord.query.filter(ScanRecord.scan_date >= week_start).count(),
    }


def stats_for(claims: dict) -> dict:
    if claims.get("role") == ROLE_ADMIN:
        return admin_stats()
    return user_stats(claims["id"])


def recent_scans(claims: dict, limit: int = RECENT_SCANS_LIMIT) -> list[dict]:
    """Latest scans: everyone's (with username) for admins, own scans otherwise."""
    query = ScanRecord.query
    is_admin = claims.get("role") == ROLE_ADMIN
    if not is_admin:
        query = query.filter(ScanRecord.user_id == claims["id"])
    scans = query.order_by(ScanRecord.scan_date.desc(), ScanRecord.id.desc()).limit(limit).all()
    rows = []
    for scan in scans:
        row = {
            "id": scan.id,
            "image_filename": scan.image_filename,
            "scan_date": scan.scan_date.isoformat() if scan.scan_date else None,
        }
        if is_admin:
            row["username"] = scan.user.username
        rows.append(row)
    return rows


def all_scans(limit: int = ALL_SCANS_LIMIT) -> list[dict]:
    scans = (
        ScanRecord.query
        .join(User, ScanRecord.user_id == User.id)
        .order_by(ScanRecord.scan_date.desc(), ScanRecord.id.desc())
        .limit(limit)
        .all()
    )
    return [s.to_dict(include_username=True) for s in scans]


def list_users() -> list[dict]:
    users = User.query.order_by(User.created_at.desc(), User.id.desc()).all()
    return [u.to_dict() for u in users]


def delete_user(acting_user_id: int, target_id: int) -> None:
    """Delete a regular user together with their scans and reset tokens."""
    if target_id == acting_user_id:
        raise ValidationError("Cannot delete your own account")

    user = db.session.get(User, target_id)
    if not user or user.role == ROLE_ADMIN:
        raise NotFoundError("User not found or cannot delete admin")

    # Dependents first, then the user, in one transaction
    scans_deleted = ScanRecord.query.filter(ScanRecord.user_id == target_id).delete(synchronize_session=False)
    PasswordResetToken.query.filter(PasswordResetToken.user_id == target_id).delete(synchronize_session=False)
    db.session.delete(user)
    db.session.commit()
    logger.info("Admin id=%s deleted user id=%s (%d scans)", acting_user_id, target_id, scans_deleted)


def change_role(acting_user_id: int, target_id: int, role: str) -> None:
    if role not in ROLES:
        raise ValidationError("Invalid role")
    if target_id == acting_user_id:
        raise ValidationError("Cannot change your own role")

    user = db.session.get(User, target_id)
    if not user:
        raise NotFoundError("User not found")
    if user.role == ROLE_ADMIN:
        raise ValidationError("Cannot change the role of an admin account")

    user.role = role
    user.updated_at = datetime.utcnow()
    db.session.commit()
    logger.info("Admin id=%s set role of user id=%s to %s", acting_user_id, target_id, role)
