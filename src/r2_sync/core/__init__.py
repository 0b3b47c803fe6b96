"""Request signing and object store access shared by the CLI and MCP server."""

from .async_utils import run_sync
from .client import HttpTransport, ObjectStoreClient, TransportResponse
from .signer import Credentials, SignedRequest, sign

__all__ = [
    "Credentials",
    "HttpTransport",
    "ObjectStoreClient",
    "SignedRequest",
    "TransportResponse",
    "run_sync",
    "sign",
]
