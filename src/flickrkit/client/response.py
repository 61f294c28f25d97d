"""Decoding of Flickr response payloads into :class:`FlickrResponse`.

Flickr can answer in three wire formats, selected by the ``format`` request
parameter. Each has its own decoder class, registered against its
:class:`~flickrkit.models.ResponseFormat` member and picked with
:func:`get_decoder`:

- ``rest`` -- :class:`XmlDecoder`; ``data`` is the root
  :class:`xml.etree.ElementTree.Element`.
- ``json`` -- :class:`JsonDecoder`; ``data`` is the JSON text found inside
  the ``jsonFlickrApi(...)`` wrapper.
- ``php_serial`` -- :class:`PhpDecoder`; ``data`` is the unserialized ``dict``.

Every decoder reads ``stat`` first. When it is not ``ok`` the error code and
message are filled in from the format's error fields, and the caller may
ask :func:`decode` to raise :class:`~flickrkit.exceptions.MethodFailure`
instead of returning the failure.

Example::

    resp = decode("rest", '<rsp stat="ok"><frob>abc</frob></rsp>')
    resp.is_ok()       # True
    resp.find("frob")  # 'abc'
"""

from __future__ import annotations

import json
import re
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, NamedTuple, Optional

import phpserialize

from flickrkit.exceptions import (
    DeserializeError,
    JsonDecodeError,
    MethodFailure,
    PropertyNotFoundError,
    XmlParseError,
)
from flickrkit.models import ResponseFormat

STAT_OK = "ok"
STAT_FAIL = "fail"

UNKNOWN_ERROR_CODE = 0
UNKNOWN_ERROR_MESSAGE = "Unknown error"


@dataclass(frozen=True)
class FlickrResponse:
    """The decoded result of one API call, independent of wire format.

    ``error_code`` and ``error_message`` are set exactly when the call
    failed (``stat != "ok"``).

    Attributes:
        format: The wire format the payload arrived in.
        stat: The ``stat`` value reported by Flickr.
        error_code: Remote error code, or ``None`` on success.
        error_message: Remote error message, or ``None`` on success.
        data: The decoded payload (see the module docstring).
        raw: The payload text exactly as received.
    """

    format: ResponseFormat
    stat: str
    error_code: Optional[int]
    error_message: Optional[str]
    data: Any = field(compare=False)
    raw: str = field(repr=False)

    def is_ok(self) -> bool:
        """Whether Flickr reported success."""
        return self.stat == STAT_OK

    def get_data(self) -> Any:
        """Return the decoded payload."""
        return self.data

    def find(self, path: str) -> str:
        """Return one value from the payload by dotted path.

        Path segments walk child elements (XML) or nested keys (JSON / PHP).
        The last segment may name an XML attribute. Flickr's ``_content``
        wrapper is unwrapped, so ``find("frob")`` works in every format.

        Raises:
            PropertyNotFoundError: If nothing exists at *path*.
        """
        return get_decoder(self.format).lookup(self.data, path)

    def __str__(self) -> str:
        return get_decoder(self.format).render(self.data)


class _Parsed(NamedTuple):
    data: Any
    stat: str
    error_code: Optional[int]
    error_message: Optional[str]


class ResponseDecoder(ABC):
    """Base class for the per-format decoders."""

    format: ResponseFormat

    def decode(self, raw: str, throw_on_failure: bool = False) -> FlickrResponse:
        """Parse *raw* into a :class:`FlickrResponse`.

        Args:
            raw: The payload text.
            throw_on_failure: Raise :class:`MethodFailure` when ``stat`` is
                not ``ok`` instead of returning the failed response.
        """
        parsed = self.parse(raw)
        if parsed.stat == STAT_OK:
            code, message = None, None
        else:
            code = UNKNOWN_ERROR_CODE if parsed.error_code is None else parsed.error_code
            message = parsed.error_message or UNKNOWN_ERROR_MESSAGE
            if throw_on_failure:
                raise MethodFailure(message, code)
        return FlickrResponse(
            format=self.format,
            stat=parsed.stat,
            error_code=code,
            error_message=message,
            data=parsed.data,
            raw=raw,
        )

    @abstractmethod
    def parse(self, raw: str) -> _Parsed:
        """Parse *raw* and pull out ``stat`` and the error fields."""

    @abstractmethod
    def render(self, data: Any) -> str:
        """Render decoded *data* back into the format's text form."""

    @abstractmethod
    def lookup(self, data: Any, path: str) -> str:
        """Resolve a dotted *path* inside decoded *data*."""


class XmlDecoder(ResponseDecoder):
    """Decoder for the ``rest`` format: ``<rsp stat="..."><err code msg/></rsp>``."""

    format = ResponseFormat.REST

    def parse(self, raw: str) -> _Parsed:
        try:
            root = ET.fromstring(raw)
        except ET.ParseError as exc:
            raise XmlParseError(f"Could not parse XML: {exc}", raw) from exc

        code, message = None, None
        err = root.find("err")
        if err is not None:
            code = _to_int(err.get("code"))
            message = err.get("msg")
        return _Parsed(root, root.get("stat", ""), code, message)

    def render(self, data: Any) -> str:
        return ET.tostring(data, encoding="unicode")

    def lookup(self, data: Any, path: str) -> str:
        node = data
        segments = _split_path(path)
        for index, segment in enumerate(segments):
            child = node.find(segment)
            if child is not None:
                node = child
                continue
            if index == len(segments) - 1 and segment in node.attrib:
                return node.attrib[segment]
            raise PropertyNotFoundError(f"No value at {path!r} in response")
        return (node.text or "").strip()


class _MappingLookup:
    """Dotted-path lookup over Flickr's nested mapping layout."""

    @staticmethod
    def lookup_mapping(data: Any, path: str) -> str:
        node = data
        for segment in _split_path(path):
            if not isinstance(node, dict) or segment not in node:
                raise PropertyNotFoundError(f"No value at {path!r} in response")
            node = node[segment]
        if isinstance(node, dict):
            if "_content" not in node:
                raise PropertyNotFoundError(f"Value at {path!r} is not a scalar")
            node = node["_content"]
        return "" if node is None else str(node)


class JsonDecoder(_MappingLookup, ResponseDecoder):
    """Decoder for the ``json`` format, wrapped as ``jsonFlickrApi(<json>)``."""

    format = ResponseFormat.JSON

    _ENVELOPE = re.compile(r"^jsonFlickrApi\((.*)\)$", re.DOTALL)

    def parse(self, raw: str) -> _Parsed:
        match = self._ENVELOPE.match(raw.strip())
        if match is None:
            raise JsonDecodeError("Response is not wrapped in jsonFlickrApi(...)", raw)
        inner = match.group(1)
        try:
            obj = json.loads(inner)
        except json.JSONDecodeError as exc:
            raise JsonDecodeError(f"Could not decode JSON: {exc}", raw) from exc
        if not isinstance(obj, dict):
            raise JsonDecodeError("JSON response is not an object", raw)

        code, message = None, None
        if "code" in obj:
            code = _to_int(obj["code"])
            message = _to_str(obj.get("message"))
        return _Parsed(inner, _to_str(obj.get("stat")) or "", code, message)

    def render(self, data: Any) -> str:
        return data

    def lookup(self, data: Any, path: str) -> str:
        return self.lookup_mapping(json.loads(data), path)


class PhpDecoder(_MappingLookup, ResponseDecoder):
    """Decoder for the ``php_serial`` format (PHP ``serialize()`` output)."""

    format = ResponseFormat.PHP_SERIAL

    def parse(self, raw: str) -> _Parsed:
        try:
            obj = phpserialize.loads(raw.encode("utf-8"), decode_strings=True)
        except (ValueError, TypeError, IndexError) as exc:
            raise DeserializeError(f"Could not unserialize the supplied PHP: {exc}", raw) from exc
        if not isinstance(obj, dict):
            raise DeserializeError("Unserialized PHP value is not an array", raw)

        code, message = None, None
        if "code" in obj:
            code = _to_int(obj["code"])
            message = _to_str(obj.get("message"))
        return _Parsed(obj, _to_str(obj.get("stat")) or "", code, message)

    def render(self, data: Any) -> str:
        return phpserialize.dumps(data).decode("utf-8")

    def lookup(self, data: Any, path: str) -> str:
        return self.lookup_mapping(data, path)


_DECODERS: dict[ResponseFormat, ResponseDecoder] = {
    decoder.format: decoder for decoder in (XmlDecoder(), JsonDecoder(), PhpDecoder())
}


def get_decoder(format: ResponseFormat | str) -> ResponseDecoder:
    """Return the decoder registered for *format*."""
    return _DECODERS[ResponseFormat.parse(format)]


def decode(
    format: ResponseFormat | str,
    raw: str,
    throw_on_failure: bool = False,
) -> FlickrResponse:
    """Decode *raw* in the given *format*.

    Raises:
        XmlParseError: A ``rest`` payload is not well-formed.
        JsonDecodeError: A ``json`` payload lacks the wrapper or is not JSON.
        DeserializeError: A ``php_serial`` payload cannot be unserialized.
        MethodFailure: ``stat`` is not ``ok`` and *throw_on_failure* is set.
    """
    return get_decoder(format).decode(raw, throw_on_failure=throw_on_failure)


def _split_path(path: str) -> list[str]:
    segments = [segment for segment in path.split(".") if segment]
    if not segments:
        raise PropertyNotFoundError("Empty lookup path")
    return segments


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return UNKNOWN_ERROR_CODE


def _to_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)
