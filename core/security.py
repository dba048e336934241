"""
core/security.py — Passwords & Tokens
======================================
Central place for password hashing and JWT handling.
Every module imports from here — never roll your own crypto elsewhere.

Provides:
- PBKDF2-SHA256 password hashing  (salted, iteration count from settings)
- JWT access token creation / verification
"""

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime, timedelta

from jose import JWTError, jwt  # noqa: F401  (JWTError re-exported)
from config import settings

logger = logging.getLogger("jataayu.security")

HASH_SCHEME = "pbkdf2_sha256"


class SecurityEngine:
    """
    Singleton security engine, used across all modules via:
        from core.security import security
    """

    # ── Passwords ──────────────────────────────────────────────────────────
    def hash_password(self, password: str, salt: str = None, iterations: int = None) -> str:
        """
        Hash a password with PBKDF2.
        Stored format:  pbkdf2_sha256$<iterations>$<salt>$<hash>
        """
        salt = salt or secrets.token_hex(16)
        iterations = iterations or settings.PASSWORD_HASH_ITERATIONS
        key = hashlib.pbkdf2_hmac(
            hash_name="sha256",
            password=password.encode(),
            salt=salt.encode(),
            iterations=iterations,
        )
        digest = base64.b64encode(key).decode()
        return f"{HASH_SCHEME}${iterations}${salt}${digest}"

    def verify_password(self, password: str, stored_hash: str) -> bool:
        try:
            scheme, iterations, salt, _ = stored_hash.split("$", 3)
        except ValueError:
            logger.warning("Malformed password hash in store")
            return False
        if scheme != HASH_SCHEME:
            return False
        computed = self.hash_password(password, salt=salt, iterations=int(iterations))
        return hmac.compare_digest(computed, stored_hash)

    # ── JWT Tokens ─────────────────────────────────────────────────────────
    def create_access_token(self, subject: str, extra_data: dict = None) -> str:
        """
        Create a signed JWT token.
        subject = user ID.
        """
        payload = {
            "sub": subject,
            "exp": datetime.utcnow() + timedelta(minutes=settings.JWT_EXPIRY_MINUTES),
            "iat": datetime.utcnow(),
        }
        if extra_data:
            payload.update(extra_data)
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

    def verify_token(self, token: str) -> dict:
        """Verify and decode a JWT. Raises JWTError if invalid/expired."""
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


# Singleton instance, import this everywhere
security = SecurityEngine()
