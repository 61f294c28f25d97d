"""Call execution and response decoding for flickrkit.

Classes:
    :class:`RequestExecutor` -- builds, signs, sends and caches one call.
    :class:`FlickrResponse` -- the decoded result, whatever the wire format.

Functions:
    :func:`decode` -- decode a raw payload in a given format.

Example::

    from flickrkit.client import decode

    resp = decode("json", 'jsonFlickrApi({"stat": "ok"})')
    assert resp.is_ok()
"""

from flickrkit.client.executor import RequestExecutor
from flickrkit.client.response import FlickrResponse, decode, get_decoder

__all__ = ["FlickrResponse", "RequestExecutor", "decode", "get_decoder"]
