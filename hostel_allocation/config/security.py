"""
Credential hashing for student accounts created by roster uploads.
"""

from typing import Any, List, Optional

from passlib.context import CryptContext

from hostel_allocation.config.settings import settings


class PasswordHasher:
    """Thin wrapper over passlib's ``CryptContext``."""

    def __init__(self, schemes: Optional[List[str]] = None, **context_options: Any):
        schemes = schemes or settings.password_schemes
        if "bcrypt" in schemes:
            context_options.setdefault("bcrypt__rounds", settings.PASSWORD_BCRYPT_ROUNDS)
        self.pwd_context = CryptContext(schemes=schemes, deprecated="auto", **context_options)

    def hash(self, password: str) -> str:
        """Hash password"""
        return self.pwd_context.hash(password)

    def verify(self, plain_password: str, hashed_password: str) -> bool:
        """Verify password against hash"""
        return self.pwd_context.verify(plain_password, hashed_password)


_default_hasher: Optional[PasswordHasher] = None


def get_password_hasher() -> PasswordHasher:
    """Process wide hasher built from settings."""
    global _default_hasher
    if _default_hasher is None:
        _default_hasher = PasswordHasher()
    return _default_hasher
