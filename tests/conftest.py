"""Shared pytest fixtures for r2-sync tests."""

from datetime import datetime, timezone

import pytest

from r2_sync.config import Config
from r2_sync.core.client import TransportResponse

FIXED_NOW = datetime(2024, 1, 15, 12, 30, 45, tzinfo=timezone.utc)

_ENV_VARS = (
    "R2_BUCKET",
    "R2_ENDPOINT",
    "R2_ACCESS_KEY_ID",
    "R2_SECRET_ACCESS_KEY",
    "R2_SYNC_FOLDER",
    "R2_VAULT_ROOT",
    "R2_AUTO_SYNC",
    "R2_SYNC_INTERVAL",
    "R2_LANGUAGE",
    "R2_INSECURE",
    "R2_DEBUG",
    "R2_SYNC_CONFIG",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's R2_* settings out of every test."""
    for var in _ENV_VARS:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def mock_config(tmp_path):
    """A complete Config pointing at a temporary vault."""
    return Config(
        bucket_name="notes",
        endpoint="https://acct.r2.cloudflarestorage.com",
        access_key_id="AKIDEXAMPLE",
        secret_access_key="secret-example",
        vault_root=str(tmp_path),
    )


class FakeTransport:
    """Records requests and answers from a queue (or a callable)."""

    def __init__(self, responses=None, handler=None):
        self.responses = list(responses or [])
        self.handler = handler
        self.calls: list[dict] = []

    def request(self, url, method, headers, body=None):
        self.calls.append(
            {"url": url, "method": method, "headers": headers, "body": body}
        )
        if self.handler is not None:
            return self.handler(url, method, headers, body)
        return self.responses.pop(0)


@pytest.fixture
def fake_transport():
    """Factory for FakeTransport instances."""

    def _create(*responses, handler=None):
        return FakeTransport(responses, handler=handler)

    return _create


def listing_xml(*keys: str, truncated: bool = False) -> str:
    """Minimal ListObjectsV2 response body."""
    contents = "".join(
        f"<Contents><Key>{key}</Key><Size>1</Size></Contents>"
        for key in keys
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<ListBucketResult xmlns="http://s3.amazonaws.com/doc/2006-03-01/">'
        "<Name>notes</Name>"
        f"<IsTruncated>{'true' if truncated else 'false'}</IsTruncated>"
        f"{contents}"
        "</ListBucketResult>"
    )


def ok(text: str = "") -> TransportResponse:
    return TransportResponse(status=200, text=text)
