import hashlib
import hmac

from .events import canonical_json


def sign(payload: dict, secret: str) -> str:
    """Lowercase hex HMAC-SHA256 over the canonical JSON encoding of `payload`."""
    body = canonical_json(payload).encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def verify_signature(body: bytes, signature: str, secret: str) -> bool:
    if not signature or not secret:
        return False
    expected = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())
