"""
SQLite-based user store for the order desk login.
Stores users with bcrypt-hashed passwords.
"""
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from pathlib import Path

import bcrypt as _bcrypt


def _hash_password(password: str) -> str:
    return _bcrypt.hashpw(password.encode("utf-8"), _bcrypt.gensalt()).decode("utf-8")


class UserDB:
    """SQLite user database for cookie-session authentication."""

    def __init__(self, db_path: str):
        self.db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        """Get a new connection (sqlite3 connections are not thread-safe)."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self):
        """Create the users table if it doesn't exist."""
        conn = self._get_conn()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    email TEXT UNIQUE NOT NULL,
                    password_hash TEXT NOT NULL,
                    name TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'admin',
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    is_active INTEGER DEFAULT 1
                )
            """)
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _to_dict(row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "id": row["id"],
            "email": row["email"],
            "name": row["name"],
            "role": row["role"],
            "created_at": row["created_at"],
        }

    def create_user(self, email: str, password: str, name: str,
                    role: str = "admin") -> Optional[Dict[str, Any]]:
        """
        Register a new user.

        Returns:
            User dict if created, None if email already exists.
        """
        conn = self._get_conn()
        try:
            now = datetime.now(timezone.utc).isoformat()
            user_id = str(uuid.uuid4())
            conn.execute(
                """INSERT INTO users (id, email, password_hash, name, role, created_at, updated_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (user_id, email.lower().strip(), _hash_password(password), name.strip(), role, now, now)
            )
            conn.commit()
            return {
                "id": user_id,
                "email": email.lower().strip(),
                "name": name.strip(),
                "role": role,
                "created_at": now,
            }
        except sqlite3.IntegrityError:
            # Email already exists
            return None
        finally:
            conn.close()

    def ensure_user(self, email: str, password: str, name: str,
                    role: str = "admin") -> Dict[str, Any]:
        """
        Create the user, or reset its password/name when it already exists.
        Used to seed the initial account from AUTH_EMAIL / AUTH_PASSWORD.
        """
        created = self.create_user(email, password, name, role)
        if created:
            return created

        conn = self._get_conn()
        try:
            conn.execute(
                "UPDATE users SET password_hash = ?, name = ?, is_active = 1, updated_at = ? WHERE email = ?",
                (_hash_password(password), name.strip(), datetime.now(timezone.utc).isoformat(),
                 email.lower().strip())
            )
            conn.commit()
        finally:
            conn.close()
        return self.get_user_by_email(email)

    def authenticate(self, email: str, password: str) -> Optional[Dict[str, Any]]:
        """
        Verify email + password.

        Returns:
            User dict if credentials are valid, None otherwise.
        """
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ? AND is_active = 1",
                (email.lower().strip(),)
            ).fetchone()

            if not row:
                return None

            if not _bcrypt.checkpw(
                password.encode("utf-8"),
                row["password_hash"].encode("utf-8"),
            ):
                return None

            return self._to_dict(row)
        finally:
            conn.close()

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Look up an active user by ID."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE id = ? AND is_active = 1",
                (user_id,)
            ).fetchone()
            return self._to_dict(row) if row else None
        finally:
            conn.close()

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Look up an active user by email."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ? AND is_active = 1",
                (email.lower().strip(),)
            ).fetchone()
            return self._to_dict(row) if row else None
        finally:
            conn.close()
