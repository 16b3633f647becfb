import base64
import hashlib

DIGEST_LENGTH = 44


def digest_secret(raw_secret: str) -> str:
    """SHA-256 of the secret, standard Base64 (always 44 characters)."""
    digest = hashlib.sha256(raw_secret.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")
