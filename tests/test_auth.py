"""
Standalone tests for the session auth layer.
Tests the JWT handler and the user database.
All test artifacts use temp directories and are cleaned up after.
"""
import os
import sqlite3
import sys
import tempfile
import shutil
import unittest
from pathlib import Path

# Ensure src/ is on path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))


class TestJWTHandler(unittest.TestCase):
    """Test session token creation and verification."""

    def setUp(self):
        from api.auth.jwt_handler import JWTHandler
        self.handler = JWTHandler(
            secret="test-secret-key-for-jwt-testing-only",
            algorithm="HS256",
            session_expiry_days=7,
        )

    def test_verify_session_token(self):
        token = self.handler.create_session_token("user-1", "test@test.com", "admin")
        payload = self.handler.verify_token(token)
        self.assertIsNotNone(payload)
        self.assertEqual(payload["sub"], "user-1")
        self.assertEqual(payload["email"], "test@test.com")
        self.assertEqual(payload["role"], "admin")
        self.assertEqual(payload["type"], "session")
        self.assertEqual(payload["exp"] - payload["iat"], 7 * 24 * 60 * 60)

    def test_wrong_type_rejected(self):
        token = self.handler.create_session_token("user-1", "test@test.com", "admin")
        self.assertIsNone(self.handler.verify_token(token, expected_type="refresh"))

    def test_invalid_token_rejected(self):
        self.assertIsNone(self.handler.verify_token("not-a-real-token"))
        self.assertIsNone(self.handler.verify_token(None))

    def test_other_secret_rejected(self):
        from api.auth.jwt_handler import JWTHandler
        other = JWTHandler(secret="another-secret-key-for-jwt-testing")
        token = other.create_session_token("user-1", "test@test.com", "admin")
        self.assertIsNone(self.handler.verify_token(token))

    def test_max_age(self):
        self.assertEqual(self.handler.max_age_seconds, 604800)

    def test_empty_secret_raises(self):
        from api.auth.jwt_handler import JWTHandler
        with self.assertRaises(ValueError):
            JWTHandler(secret="")


class TestUserDB(unittest.TestCase):
    """Test SQLite user database operations."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp(prefix="order_desk_test_auth_")
        self.db_path = os.path.join(self.temp_dir, "test_users.db")
        from api.auth.user_db import UserDB
        self.db = UserDB(db_path=self.db_path)

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_create_user(self):
        user = self.db.create_user("Test@Example.com", "password123", "Test User")
        self.assertIsNotNone(user)
        self.assertEqual(user["email"], "test@example.com")
        self.assertEqual(user["role"], "admin")

    def test_duplicate_email_rejected(self):
        self.db.create_user("dup@example.com", "pass1", "User A")
        self.assertIsNone(self.db.create_user("DUP@example.com", "pass2", "User B"))

    def test_authenticate(self):
        self.db.create_user("auth@example.com", "correct", "Auth User")
        self.assertIsNotNone(self.db.authenticate(" AUTH@example.com ", "correct"))
        self.assertIsNone(self.db.authenticate("auth@example.com", "wrong"))
        self.assertIsNone(self.db.authenticate("nobody@example.com", "correct"))

    def test_ensure_user_resets_password(self):
        first = self.db.ensure_user("seed@example.com", "old-pass", "Seed")
        second = self.db.ensure_user("seed@example.com", "new-pass", "Seed Renamed")
        self.assertEqual(first["id"], second["id"])
        self.assertEqual(second["name"], "Seed Renamed")
        self.assertIsNone(self.db.authenticate("seed@example.com", "old-pass"))
        self.assertIsNotNone(self.db.authenticate("seed@example.com", "new-pass"))

    def test_lookups(self):
        user = self.db.create_user("look@example.com", "pass", "Look")
        self.assertEqual(self.db.get_user_by_id(user["id"])["email"], "look@example.com")
        self.assertEqual(self.db.get_user_by_email("LOOK@example.com")["id"], user["id"])
        self.assertIsNone(self.db.get_user_by_id("missing"))

    def test_password_stored_as_bcrypt(self):
        self.db.create_user("hash@example.com", "plain", "Hash")
        conn = sqlite3.connect(self.db_path)
        try:
            stored = conn.execute("SELECT password_hash FROM users").fetchone()[0]
        finally:
            conn.close()
        self.assertNotEqual(stored, "plain")
        self.assertTrue(stored.startswith("$2"))


if __name__ == "__main__":
    unittest.main()
