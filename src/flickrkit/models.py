"""Canonical Pydantic models shared across all flickrkit modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Configuration models** -- owned by :class:`~flickrkit.api.ApiContext`:
    :class:`ResponseFormat`, :class:`HTTPMethod`, :class:`Credentials`,
    and :class:`RequestConfig`.

**Cache models** -- owned by :class:`~flickrkit.cache.RequestCache` and
serialised as JSON when the cache is persisted:
    :class:`CacheEntry` and :class:`CacheStore`.
"""

from __future__ import annotations

import enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from flickrkit.exceptions import ConfigError

REST_ENDPOINT_URL = "https://api.flickr.com/services/rest/"
"""The default Flickr endpoint for REST requests."""


class ResponseFormat(str, enum.Enum):
    """Wire formats the Flickr API can answer in.

    The value is what gets sent as the ``format`` request parameter.
    """

    REST = "rest"
    JSON = "json"
    PHP_SERIAL = "php_serial"

    @classmethod
    def parse(cls, name: str | ResponseFormat) -> ResponseFormat:
        """Resolve a format name, accepting the ``xml`` and ``php`` aliases.

        Raises:
            ConfigError: If *name* is not a known format.
        """
        if isinstance(name, ResponseFormat):
            return name
        normalised = str(name).strip().lower()
        normalised = _FORMAT_ALIASES.get(normalised, normalised)
        try:
            return cls(normalised)
        except ValueError:
            raise ConfigError(f"Unknown response format: {name!r}") from None


_FORMAT_ALIASES = {"xml": "rest", "php": "php_serial"}


class HTTPMethod(str, enum.Enum):
    """HTTP verbs the context may be configured to send calls with."""

    GET = "GET"
    POST = "POST"
    DELETE = "DELETE"
    HEAD = "HEAD"
    PATCH = "PATCH"

    @classmethod
    def parse(cls, name: str | HTTPMethod) -> HTTPMethod:
        """Resolve an HTTP method name case-insensitively.

        Raises:
            ConfigError: If *name* is not one of the allowed verbs.
        """
        if isinstance(name, HTTPMethod):
            return name
        try:
            return cls(str(name).strip().upper())
        except ValueError:
            raise ConfigError(f"The HTTP method you supplied is invalid: {name!r}") from None

    @property
    def sends_body(self) -> bool:
        """Whether parameters travel in a form body rather than the query string."""
        return self in (HTTPMethod.POST, HTTPMethod.PATCH)


# --- Configuration ---


class Credentials(BaseModel):
    """API key, shared secret, and the optional OAuth access token pair.

    ``key`` and ``secret`` are fixed once the model is built. The token pair
    is rotated by :meth:`~flickrkit.api.ApiContext.set_token` after an
    authentication exchange, which swaps in a fresh model.
    """

    model_config = ConfigDict(frozen=True)

    key: str = Field(min_length=1, description="Flickr API key")
    secret: str = Field(min_length=1, description="Shared secret paired with the key")
    token: Optional[str] = Field(default=None, description="OAuth access token")
    token_secret: Optional[str] = Field(default=None, description="OAuth access token secret")

    def __repr__(self) -> str:
        return f"Credentials(key={self.key!r}, token={self.token!r})"


class RequestConfig(BaseModel):
    """Per-context request settings read by the executor on every call."""

    model_config = ConfigDict(validate_assignment=True)

    format: ResponseFormat = Field(default=ResponseFormat.REST)
    http_method: HTTPMethod = Field(default=HTTPMethod.GET)
    endpoint_url: str = Field(default=REST_ENDPOINT_URL)
    callback_url: str = Field(default="", description="oauth_callback sent with each call")
    timeout: float = Field(default=30, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


# --- Cache ---


class CacheEntry(BaseModel):
    """One stored response, keyed by its derived request identity."""

    key: str
    payload: str = Field(description="Raw response text exactly as received")
    format: ResponseFormat
    expires_at: Optional[float] = Field(
        default=None, description="POSIX timestamp after which the entry is stale"
    )

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class CacheStore(BaseModel):
    """On-disk shape of a persisted :class:`~flickrkit.cache.RequestCache`."""

    model_config = ConfigDict(extra="forbid")

    version: Literal[1] = Field(default=1, description="Store layout version; other values are rejected")
    entries: dict[str, CacheEntry] = Field(default_factory=dict)
