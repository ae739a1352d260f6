"""
Database handle shared by models, services and routes.
Access is per-request through Flask-SQLAlchemy's scoped session.
"""

import logging
import sqlite3

import bcrypt
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event
from sqlalchemy.engine import Engine

logger = logging.getLogger("pharmalens.database")

db = SQLAlchemy()


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record):
    # SQLite ignores FOREIGN KEY clauses unless asked per connection
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def seed_default_users(admin_password: str, user_password: str) -> None:
    """Insert the default admin and test accounts if they do not exist yet."""
    from pharmalens.models.models import User

    defaults = [
        ("admin", "admin@pharmalens.com", admin_password, "admin"),
        ("testuser", "user@pharmalens.com", user_password, "user"),
    ]
    created = 0
    for username, email, password, role in defaults:
        exists = User.query.filter((User.username == username) | (User.email == email)).first()
        if exists:
            continue
        pw_hash = bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()
        db.session.add(User(username=username, email=email, password_hash=pw_hash, role=role))
        created += 1
    if created:
        db.session.commit()
        logger.info("Seeded %d default account(s)", created)
