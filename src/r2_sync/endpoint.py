"""Endpoint normalization.

Users paste endpoints in all shapes (``xxx.r2.cloudflarestorage.com``,
``https://xxx.r2.cloudflarestorage.com/bucket/``, values with a stray
newline from a password manager...).  ``Endpoint.parse`` reduces them to
an origin: scheme + host, no path, no trailing slash, no control
whitespace.
"""

import re
from dataclasses import dataclass

from .errors import ConfigurationIncompleteError

_CONTROL_WS = re.compile(r"[\r\n\t]")
_SCHEME = re.compile(r"^(https?):(?://|$)")


def clean_endpoint(raw: str) -> str:
    """Trim whitespace, drop CR/LF/TAB anywhere, strip trailing slashes."""
    value = (raw or "").strip()
    value = _CONTROL_WS.sub("", value)
    return value.rstrip("/")


@dataclass(frozen=True)
class Endpoint:
    """Normalized object store origin.

    Attributes:
        scheme: ``https`` or ``http``.
        host: Host name (with port, if one was given).
    """

    scheme: str
    host: str

    @classmethod
    def parse(cls, raw: str) -> "Endpoint":
        """Normalize a raw endpoint string.

        Raises:
            ConfigurationIncompleteError: If nothing usable remains.
        """
        cleaned = clean_endpoint(raw)
        match = _SCHEME.match(cleaned)
        scheme = match.group(1) if match else "https"
        host = _SCHEME.sub("", cleaned).split("/", 1)[0]
        if not host:
            raise ConfigurationIncompleteError(["endpoint"])
        return cls(scheme=scheme, host=host)

    @property
    def base_url(self) -> str:
        """``<scheme>://<host>``."""
        return f"{self.scheme}://{self.host}"
