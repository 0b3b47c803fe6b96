"""SHA-256 and HMAC-SHA256 primitives used by the request signer."""

import hashlib
import hmac


def to_bytes(data: str | bytes) -> bytes:
    """Return *data* as bytes, UTF-8 encoding strings."""
    if isinstance(data, bytes):
        return data
    return data.encode("utf-8")


def sha256_hex(data: str | bytes) -> str:
    """Lowercase hex SHA-256 digest of *data*."""
    return hashlib.sha256(to_bytes(data)).hexdigest()


def hmac_sha256(key: bytes, msg: str | bytes) -> bytes:
    """Raw HMAC-SHA256 of *msg* under *key*."""
    return hmac.new(key, to_bytes(msg), hashlib.sha256).digest()
