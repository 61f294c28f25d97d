"""Exception hierarchy for flickrkit.

All exceptions inherit from :class:`FlickrKitError`, so callers that do not
care about the failure class can catch that one type. Errors raised while
decoding a payload keep the offending text on ``.data`` for diagnostics.

Subclass hierarchy::

    FlickrKitError
    +-- ConfigError            missing credential, unknown format or HTTP verb
    +-- ConnectionError_       network / timeout failure (never retried)
    +-- ServerError            HTTP status >= 400 from the endpoint
    +-- ResponseParseError     malformed payload (carries raw text)
    |   +-- XmlParseError
    |   +-- JsonDecodeError
    +-- DeserializeError       malformed php_serial payload (carries raw text)
    +-- MethodFailure          well-formed ``stat="fail"`` response
    +-- PropertyNotFoundError  value missing from a decoded response
    +-- StoreCorruptError      persisted cache file is not a valid store
"""

from __future__ import annotations

from typing import Optional


class FlickrKitError(Exception):
    """Base exception for all flickrkit errors."""


class ConfigError(FlickrKitError):
    """Raised for configuration problems (missing key or secret, invalid HTTP method)."""


class ConnectionError_(FlickrKitError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """


class ServerError(FlickrKitError):
    """Raised when the endpoint answers with an HTTP error status."""

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code


class _DataCarryingError(FlickrKitError):
    """Mixin base for errors that keep the payload they could not read."""

    def __init__(self, message: str, data: Optional[str] = None):
        super().__init__(message)
        self.data = "" if data is None else str(data)

    def __str__(self) -> str:
        message = super().__str__()
        if self.data:
            return f"{message}\nData: {self.data!r}"
        return message


class ResponseParseError(_DataCarryingError):
    """Raised when a response payload is not structurally valid."""


class XmlParseError(ResponseParseError):
    """Raised when an XML (``rest``) payload is not well-formed."""


class JsonDecodeError(ResponseParseError):
    """Raised when a JSON payload lacks the callback wrapper or is not valid JSON."""


class DeserializeError(_DataCarryingError):
    """Raised when a ``php_serial`` payload cannot be unserialized."""


class MethodFailure(FlickrKitError):
    """Raised for a well-formed response whose ``stat`` is not ``ok``.

    Only raised when the caller asks for it with ``throw_on_failure=True``;
    otherwise the failure comes back as a response object.

    Args:
        message: The remote error message.
        code: The remote error code.
    """

    def __init__(self, message: str, code: int):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.message = message


class PropertyNotFoundError(FlickrKitError):
    """Raised when a requested value cannot be found in a decoded response."""


class StoreCorruptError(FlickrKitError):
    """Raised when a persisted cache file does not hold a valid store."""
