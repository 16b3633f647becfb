import secrets

# noinspection PyPackageRequirements
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

REFRESH_SECRET_BYTES = 32

ph = PasswordHasher()


def hash_password(pw: str) -> str:
    return ph.hash(pw)


def verify_password(pw: str, hashed: str) -> bool:
    try:
        return ph.verify(hashed, pw)
    except (VerificationError, InvalidHashError):
        return False


def generate_refresh_secret() -> str:
    """256 bits from the OS CSPRNG, URL-safe without padding."""
    return secrets.token_urlsafe(REFRESH_SECRET_BYTES)
