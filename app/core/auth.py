# app/core/auth.py
from passlib.context import CryptContext

# Salted one-way hashes; verification is constant-time inside passlib.
# pbkdf2_sha256 is pure python, so no native bcrypt backend is needed.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a plaintext credential for storage."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    """
    Check a claimed credential against a stored hash.

    Returns False (instead of raising) for hashes passlib cannot parse,
    so a corrupted row reads as "invalid credentials".
    """
    try:
        return pwd_context.verify(plain_password, password_hash)
    except ValueError:
        return False
