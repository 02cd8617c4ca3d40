"""
Session token creation and verification.
Uses PyJWT with HS256 algorithm; the token travels in an httpOnly cookie.
"""
import jwt
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any


class JWTHandler:
    """Handles session token creation and verification."""

    def __init__(self, secret: str, algorithm: str = "HS256",
                 session_expiry_days: int = 7):
        if not secret:
            raise ValueError("AUTH_SECRET must be set")
        self.secret = secret
        self.algorithm = algorithm
        self.session_expiry_days = session_expiry_days

    @property
    def max_age_seconds(self) -> int:
        return self.session_expiry_days * 24 * 60 * 60

    def create_session_token(self, user_id: str, email: str, role: str) -> str:
        """Create a session token valid for ``session_expiry_days``."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": user_id,
            "email": email,
            "role": role,
            "type": "session",
            "iat": now,
            "exp": now + timedelta(days=self.session_expiry_days),
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify_token(self, token: Optional[str], expected_type: str = "session") -> Optional[Dict[str, Any]]:
        """
        Verify and decode a session token.

        Returns:
            Decoded payload dict if valid, None if missing/invalid/expired.
        """
        if not token:
            return None
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None
        if payload.get("type") != expected_type:
            return None
        return payload
