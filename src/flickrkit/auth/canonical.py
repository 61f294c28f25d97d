"""Parameter canonicalization shared by signing and cache keying.

Flickr verifies OAuth 1.0a signatures, so values are percent-encoded with
the RFC 3986 table: the unreserved characters ``A-Z a-z 0-9 - . _ ~`` pass
through, every other UTF-8 byte becomes ``%XX`` with upper-case hex, and a
space is ``%20`` (never ``+``).

The canonical form sorts the encoded pairs by key, compared as bytes, and
joins them as ``key=value`` with ``&``::

    >>> canonicalize({"b": 2, "a": 1})
    'a=1&b=2'
"""

from __future__ import annotations

from typing import Any, Mapping
from urllib.parse import quote


def percent_encode(value: Any) -> str:
    """Percent-encode *value* using the RFC 3986 unreserved set."""
    return quote(stringify(value), safe="")


def stringify(value: Any) -> str:
    """Render a parameter value the way it travels on the wire."""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


def encoded_pairs(params: Mapping[str, Any]) -> list[tuple[str, str]]:
    """Return the encoded ``(key, value)`` pairs of *params* in canonical order.

    ``None`` values are dropped.
    """
    pairs = [
        (percent_encode(key), percent_encode(value))
        for key, value in params.items()
        if value is not None
    ]
    pairs.sort(key=lambda pair: (pair[0].encode("ascii"), pair[1].encode("ascii")))
    return pairs


def canonicalize(params: Mapping[str, Any]) -> str:
    """Return the canonical ``key=value&...`` string for *params*.

    An empty mapping canonicalizes to ``""``. The result does not depend on
    the insertion order of *params*.
    """
    return "&".join(f"{key}={value}" for key, value in encoded_pairs(params))
