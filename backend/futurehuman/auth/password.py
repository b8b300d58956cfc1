"""Password hashing (passlib)."""

from passlib.context import CryptContext

_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return _context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return _context.verify(password, hashed)
