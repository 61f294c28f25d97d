"""Request canonicalization and signing for flickrkit.

- :func:`canonicalize` -- the sorted, RFC 3986 encoded ``key=value&...``
  form used for both signatures and cache keys.
- :func:`sign_request` -- adds an OAuth 1.0a HMAC-SHA1 ``oauth_signature``.
- :func:`oauth_params` -- the per-call OAuth protocol parameters.
- :func:`api_signature` -- the legacy ``api_sig`` used by the web auth page.
"""

from flickrkit.auth.canonical import canonicalize, percent_encode
from flickrkit.auth.signer import (
    VOLATILE_PARAMS,
    api_signature,
    oauth_params,
    sign,
    sign_request,
    signature_base_string,
    split_url,
)

__all__ = [
    "VOLATILE_PARAMS",
    "api_signature",
    "canonicalize",
    "oauth_params",
    "percent_encode",
    "sign",
    "sign_request",
    "signature_base_string",
    "split_url",
]
