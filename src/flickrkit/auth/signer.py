"""OAuth 1.0a request signing for the Flickr API.

Flickr checks an HMAC-SHA1 signature over the OAuth *signature base
string*::

    METHOD & enc(endpoint_url) & enc(canonicalize(params))

keyed with ``enc(consumer_secret) & enc(token_secret)``, base64-encoded and
sent as the ``oauth_signature`` parameter. The parameter set that is signed
is exactly the set that is transmitted, ``method`` included.

The legacy authentication pages still expect the older ``api_sig`` scheme
(MD5 of the secret followed by the sorted key/value pairs), available as
:func:`api_signature`.

Secrets passed to these functions are never logged or stored.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
import time
from typing import Any, Callable, Mapping, Optional
from urllib.parse import parse_qsl, urlsplit, urlunsplit

from flickrkit.auth.canonical import canonicalize, percent_encode, stringify

SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"

# Parameters that change on every request even when the logical call is the same.
VOLATILE_PARAMS: tuple[str, ...] = ("oauth_nonce", "oauth_timestamp", "oauth_signature")


def sign(secret: str, text: str, token_secret: Optional[str] = "") -> str:
    """Return the base64 HMAC-SHA1 signature of *text*.

    Args:
        secret: The consumer (API) secret.
        text: The string to sign, normally a signature base string.
        token_secret: The access token secret, empty before authentication.
    """
    key = f"{percent_encode(secret)}&{percent_encode(token_secret or '')}"
    digest = hmac.new(key.encode("utf-8"), text.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def split_url(url: str) -> tuple[str, dict[str, str]]:
    """Split *url* into its base URL and the parameters in its query string.

    The base URL has no query or fragment and a lower-cased scheme and host,
    which is the form OAuth signs.
    """
    parts = urlsplit(url)
    base = urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, "", ""))
    return base, dict(parse_qsl(parts.query, keep_blank_values=True))


def signature_base_string(http_method: str, url: str, params: Mapping[str, Any]) -> str:
    """Build the OAuth 1.0a signature base string for a request.

    Parameters already in the query string of *url* are signed along with
    *params*. A name present in both takes its value from *params*.
    """
    base_url, query = split_url(url)
    return "&".join(
        (
            http_method.upper(),
            percent_encode(base_url),
            percent_encode(canonicalize({**query, **params})),
        )
    )


def sign_request(
    params: Mapping[str, Any],
    http_method: str,
    url: str,
    secret: str,
    token_secret: Optional[str] = None,
) -> dict[str, Any]:
    """Return a copy of *params* with ``oauth_signature`` added.

    Any ``oauth_signature`` already present in *params* is ignored while
    signing and replaced in the result.
    """
    unsigned = {k: v for k, v in params.items() if k != "oauth_signature"}
    base = signature_base_string(http_method, url, unsigned)
    signed = dict(unsigned)
    signed["oauth_signature"] = sign(secret, base, token_secret)
    return signed


def api_signature(secret: str, params: Mapping[str, Any]) -> str:
    """Return the legacy Flickr ``api_sig`` for *params* (MD5 hex digest)."""
    pieces = [secret]
    for key in sorted(params):
        if params[key] is None:
            continue
        pieces.append(f"{key}{stringify(params[key])}")
    return hashlib.md5("".join(pieces).encode("utf-8")).hexdigest()


def make_nonce() -> str:
    """Return a fresh random nonce for one request."""
    return secrets.token_hex(16)


def oauth_params(
    consumer_key: str,
    token: Optional[str] = None,
    callback_url: str = "",
    nonce_factory: Callable[[], str] = make_nonce,
    clock: Callable[[], float] = time.time,
) -> dict[str, str]:
    """Return the OAuth protocol parameters for one outgoing call.

    ``oauth_callback`` is only included when a callback URL is configured
    and ``oauth_token`` only once the context holds an access token.
    """
    params = {
        "oauth_consumer_key": consumer_key,
        "oauth_nonce": nonce_factory(),
        "oauth_signature_method": SIGNATURE_METHOD,
        "oauth_timestamp": str(int(clock())),
        "oauth_version": OAUTH_VERSION,
    }
    if callback_url:
        params["oauth_callback"] = callback_url
    if token:
        params["oauth_token"] = token
    return params
