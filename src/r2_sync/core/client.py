import logging
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol
from xml.etree import ElementTree
from xml.sax.saxutils import unescape

import requests

from ..errors import ListingError, TransferError
from .signer import SignedRequest, sign

if TYPE_CHECKING:
    from ..config import Config

logger = logging.getLogger(__name__)

MARKDOWN_CONTENT_TYPE = "text/markdown; charset=utf-8"
DOCUMENT_SUFFIX = ".md"

_KEY_PATTERN = re.compile(r"<Key>([^<]+)</Key>")
_TRUNCATED_PATTERN = re.compile(
    r"<IsTruncated>\s*true\s*</IsTruncated>", re.IGNORECASE
)


@dataclass(frozen=True)
class TransportResponse:
    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    def request(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> TransportResponse: ...


class HttpTransport:
    """Remote object transport on top of ``requests``.

    Non-2xx responses are returned, not raised; network faults (DNS, TLS,
    timeouts) propagate as the original ``requests`` exceptions.
    """

    def __init__(
        self,
        verify: bool = True,
        timeout: tuple[float, float] = (10, 60),
    ):
        self.verify = verify
        self.timeout = timeout
        self._thread_local = threading.local()

    @property
    def session(self) -> requests.Session:
        """Current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            session = requests.Session()
            session.verify = self.verify
            self._thread_local.session = session
        return self._thread_local.session

    def request(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
        body: bytes | None = None,
    ) -> TransportResponse:
        response = self._get_session().request(
            method,
            url,
            headers=headers,
            data=body,
            timeout=self.timeout,
        )
        # Bodies are Markdown or XML, always UTF-8
        response.encoding = "utf-8"
        return TransportResponse(
            status=response.status_code, text=response.text
        )


def _namespace(root: ElementTree.Element) -> str:
    if root.tag.startswith("{"):
        return root.tag.split("}", 1)[0] + "}"
    return ""


def _scan_listing_keys(xml_text: str) -> list[str]:
    """Regex scan for bodies that are XML-like but not well formed."""
    return [
        unescape(match.group(1), {"&quot;": '"', "&apos;": "'"})
        for match in _KEY_PATTERN.finditer(xml_text)
    ]


def parse_listing_keys(xml_text: str) -> list[str]:
    """Extract Markdown object keys from a ListObjectsV2 response body.

    Only ``<Key>`` values ending in ``.md`` (case sensitive) are kept, in
    order of appearance.  Bodies that do not parse as XML are scanned for
    ``<Key>`` elements instead.
    """
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError:
        logger.debug("Listing body is not well-formed XML; scanning for keys")
        keys = _scan_listing_keys(xml_text)
    else:
        ns = _namespace(root)
        keys = [
            elem.text
            for elem in root.iter(f"{ns}Key")
            if elem.text
        ]
    return [key for key in keys if key.endswith(DOCUMENT_SUFFIX)]


def is_truncated_listing(xml_text: str) -> bool:
    try:
        root = ElementTree.fromstring(xml_text)
    except ElementTree.ParseError:
        return bool(_TRUNCATED_PATTERN.search(xml_text))
    flag = root.find(f"{_namespace(root)}IsTruncated")
    return flag is not None and (flag.text or "").strip().lower() == "true"


class ObjectStoreClient:
    """Signed object operations against one bucket.

    Every call is signed fresh with the current time; nothing is cached
    between calls.
    """

    def __init__(
        self,
        config: "Config",
        transport: Transport | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.config = config
        self.transport = transport or HttpTransport(
            verify=not config.insecure
        )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _sign(
        self,
        method: str,
        key: str,
        body: bytes,
        list_objects: bool = False,
    ) -> SignedRequest:
        return sign(
            method,
            key,
            body,
            self.config.credentials(),
            self.config.parsed_endpoint(),
            self.config.bucket_name,
            self._clock(),
            list_objects=list_objects,
        )

    def upload_object(self, key: str, content: str) -> None:
        """PUT *content* as the object *key*.

        Raises:
            TransferError: On a non-2xx response.
        """
        payload = content.encode("utf-8")
        signed = self._sign("PUT", key, payload)
        headers = {**signed.headers, "content-type": MARKDOWN_CONTENT_TYPE}
        logger.debug("PUT %s (%d bytes)", signed.url, len(payload))
        response = self.transport.request(
            signed.url, "PUT", headers, payload
        )
        if not response.ok:
            raise TransferError(response.status, response.text)

    def download_object(self, key: str) -> str:
        """GET the object *key* and return its text.

        Raises:
            TransferError: On a non-2xx response.
        """
        signed = self._sign("GET", key, b"")
        logger.debug("GET %s", signed.url)
        response = self.transport.request(signed.url, "GET", signed.headers)
        if not response.ok:
            raise TransferError(response.status, response.text)
        return response.text

    def list_objects(self) -> list[str]:
        """List the Markdown object keys in the bucket.

        Only the first page of results is read.  A truncated listing is
        logged as a warning.

        Raises:
            ListingError: On a non-2xx response.
        """
        signed = self._sign("GET", "", b"", list_objects=True)
        logger.debug("GET %s", signed.url)
        response = self.transport.request(signed.url, "GET", signed.headers)
        if not response.ok:
            raise ListingError(response.status, response.text)

        keys = parse_listing_keys(response.text)
        if is_truncated_listing(response.text):
            logger.warning(
                "Bucket listing for '%s' is truncated; only the first "
                "page (%d documents) is used",
                self.config.bucket_name,
                len(keys),
            )
        return keys
