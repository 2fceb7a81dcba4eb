"""Password hashing utilities for account and note passwords."""

from passlib.context import CryptContext

# bcrypt_sha256 pre-hashes with SHA-256 so passwords over 72 bytes are not truncated;
# plain bcrypt hashes still verify and are flagged for rehashing
pwd_context = CryptContext(schemes=["bcrypt_sha256", "bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    return pwd_context.verify(plain_password, hashed_password)


def needs_update(hashed_password: str) -> bool:
    """True when the hash uses a deprecated scheme and should be replaced at next login."""
    return pwd_context.needs_update(hashed_password)
