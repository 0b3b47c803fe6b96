"""AWS Signature Version 4 request signing for S3-compatible object stores.

Builds the ``authorization``, ``x-amz-date`` and ``x-amz-content-sha256``
headers for one HTTP call without any AWS SDK.  The region and service are
fixed literals: R2 and most S3-compatible stores require ``us-east-1`` and
``s3`` in the credential scope even though requests are never routed there.

The building blocks (``canonical_request``, ``string_to_sign``,
``derive_signing_key``...) are public so they can be checked against the
reference vectors published in the AWS documentation.

Usage::

    from datetime import datetime, timezone
    from r2_sync.core.signer import Credentials, sign
    from r2_sync.endpoint import Endpoint

    signed = sign(
        "PUT",
        "notes/today.md",
        "# Today",
        Credentials(access_key_id="...", secret_access_key="..."),
        Endpoint.parse("https://<account>.r2.cloudflarestorage.com"),
        "my-bucket",
        datetime.now(timezone.utc),
    )
    requests.put(signed.url, headers=signed.headers, data=...)
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

from pydantic import BaseModel, SecretStr

from .hashing import hmac_sha256, sha256_hex

if TYPE_CHECKING:
    from ..endpoint import Endpoint

ALGORITHM = "AWS4-HMAC-SHA256"
REGION = "us-east-1"
SERVICE = "s3"
TERMINATOR = "aws4_request"
LIST_QUERY = "list-type=2"
SIGNED_HEADERS = "host;x-amz-content-sha256;x-amz-date"

SIGNED_METHODS = frozenset({"GET", "PUT"})

# RFC 3986 unreserved characters are the only ones left unescaped.
_UNRESERVED = frozenset(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_.~"
)


class Credentials(BaseModel):
    """Access key pair borrowed from configuration for one signing call."""

    access_key_id: str
    secret_access_key: SecretStr

    model_config = {"frozen": True}


class SignedRequest(BaseModel):
    """Target URL and authorization headers for exactly one HTTP call.

    The signature embeds the clock second it was built in; never reuse
    an instance for a second request.
    """

    url: str
    headers: dict[str, str]

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Encoding helpers
# ---------------------------------------------------------------------------


def format_amz_date(now: datetime) -> str:
    """Format *now* as ``YYYYMMDDTHHMMSSZ`` in UTC.

    Naive datetimes are taken to be UTC already.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def uri_encode(value: str, *, encode_slash: bool = True) -> str:
    """Percent-encode *value* per the SigV4 rules.

    Every UTF-8 byte outside the unreserved set becomes ``%XX`` (uppercase
    hex).  With ``encode_slash=False`` the ``/`` separator is kept, so each
    path segment is encoded on its own.
    """
    out: list[str] = []
    for byte in value.encode("utf-8"):
        ch = chr(byte)
        if ch in _UNRESERVED:
            out.append(ch)
        elif ch == "/" and not encode_slash:
            out.append(ch)
        else:
            out.append(f"%{byte:02X}")
    return "".join(out)


# ---------------------------------------------------------------------------
# Canonical request and string to sign
# ---------------------------------------------------------------------------


def canonical_headers(headers: list[tuple[str, str]]) -> tuple[str, str]:
    """Return ``(canonical_headers, signed_headers)`` for *headers*.

    *headers* must already be lowercase and in sorted order; each entry is
    rendered as ``name:value\\n``.
    """
    block = "".join(f"{name}:{value}\n" for name, value in headers)
    signed = ";".join(name for name, _ in headers)
    return block, signed


def canonical_request(
    method: str,
    canonical_uri: str,
    canonical_query: str,
    headers: list[tuple[str, str]],
    payload_hash: str,
) -> str:
    """Assemble the canonical request string."""
    block, signed = canonical_headers(headers)
    return "\n".join(
        [
            method,
            canonical_uri,
            canonical_query,
            block,
            signed,
            payload_hash,
        ]
    )


def credential_scope(
    date_stamp: str, region: str = REGION, service: str = SERVICE
) -> str:
    """``<date>/<region>/<service>/aws4_request``."""
    return f"{date_stamp}/{region}/{service}/{TERMINATOR}"


def string_to_sign(
    amz_date: str, scope: str, canonical_request_text: str
) -> str:
    """Assemble the string to sign from the canonical request."""
    return "\n".join(
        [
            ALGORITHM,
            amz_date,
            scope,
            sha256_hex(canonical_request_text),
        ]
    )


def derive_signing_key(
    secret_access_key: str,
    date_stamp: str,
    region: str = REGION,
    service: str = SERVICE,
) -> bytes:
    """Derive the SigV4 signing key by chaining HMAC-SHA256."""
    k_date = hmac_sha256(
        f"AWS4{secret_access_key}".encode("utf-8"), date_stamp
    )
    k_region = hmac_sha256(k_date, region)
    k_service = hmac_sha256(k_region, service)
    return hmac_sha256(k_service, TERMINATOR)


def sign_canonical(
    canonical_request_text: str,
    secret_access_key: str,
    amz_date: str,
    region: str = REGION,
    service: str = SERVICE,
) -> str:
    """Return the hex signature of an already-built canonical request."""
    date_stamp = amz_date[:8]
    scope = credential_scope(date_stamp, region, service)
    to_sign = string_to_sign(amz_date, scope, canonical_request_text)
    key = derive_signing_key(
        secret_access_key, date_stamp, region, service
    )
    return hmac_sha256(key, to_sign).hex()


# ---------------------------------------------------------------------------
# Object store requests
# ---------------------------------------------------------------------------


def sign(
    method: str,
    object_key: str,
    body: str | bytes,
    credentials: Credentials,
    endpoint: Endpoint,
    bucket: str,
    now: datetime,
    *,
    list_objects: bool = False,
) -> SignedRequest:
    """Sign one object-store call.

    Args:
        method: ``GET`` or ``PUT``.
        object_key: Posix-style object key.  Ignored for the listing call.
        body: Exact payload that will be sent (empty for ``GET``).
        credentials: Access key pair.
        endpoint: Normalized endpoint providing host and base URL.
        bucket: Bucket name.
        now: Signing time; only whole seconds are used.
        list_objects: Sign the ``ListObjectsV2`` bucket call instead of an
            object call.

    Returns:
        ``SignedRequest`` with the target URL and the three auth headers.

    Raises:
        ValueError: If *method* is not ``GET`` or ``PUT``, or an object call
            has an empty key.
    """
    if method not in SIGNED_METHODS:
        raise ValueError(f"Unsupported method for signing: {method}")
    if not list_objects and not object_key:
        raise ValueError("Object key cannot be empty")

    amz_date = format_amz_date(now)
    date_stamp = amz_date[:8]
    body_hash = sha256_hex(body)

    if list_objects:
        encoded_key = ""
        query = LIST_QUERY
    else:
        encoded_key = uri_encode(object_key, encode_slash=False)
        query = ""

    request_text = canonical_request(
        method,
        f"/{bucket}/{encoded_key}",
        query,
        [
            ("host", endpoint.host),
            ("x-amz-content-sha256", body_hash),
            ("x-amz-date", amz_date),
        ],
        body_hash,
    )
    signature = sign_canonical(
        request_text,
        credentials.secret_access_key.get_secret_value(),
        amz_date,
    )
    scope = credential_scope(date_stamp)
    authorization = (
        f"{ALGORITHM} Credential={credentials.access_key_id}/{scope}, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )

    url = f"{endpoint.base_url}/{bucket}/{encoded_key}"
    if list_objects:
        url += f"?{LIST_QUERY}"

    return SignedRequest(
        url=url,
        headers={
            "x-amz-date": amz_date,
            "x-amz-content-sha256": body_hash,
            "authorization": authorization,
        },
    )
