"""flickrkit -- a client library for the Flickr REST API.

The package signs and executes Flickr API calls, decodes the three response
formats (XML, JSON, serialized PHP) into one :class:`FlickrResponse`, and can
answer repeated calls from a :class:`RequestCache` that is saved between
sessions.

Typical usage::

    from flickrkit import ApiContext

    with ApiContext(API_KEY, API_SECRET, token=TOKEN, token_secret=TOKEN_SECRET) as api:
        resp = api.execute_method("flickr.test.echo", {"foo": "bar"})
        if resp.is_ok():
            print(resp)

Modules:
    api: :class:`ApiContext`, the facade collaborators hold.
    auth: parameter canonicalization and OAuth request signing.
    cache: the response cache and its persistence.
    client: the request executor and the response decoders.
    models: Pydantic models shared across the package.
    config: cache directory, environment overrides, atomic writes.
    exceptions: the exception hierarchy.
    output: stderr diagnostics.
"""

from flickrkit.api import ApiContext
from flickrkit.cache import RequestCache
from flickrkit.client import FlickrResponse, RequestExecutor, decode
from flickrkit.models import HTTPMethod, ResponseFormat

__version__ = "0.3.0"

__all__ = [
    "ApiContext",
    "FlickrResponse",
    "HTTPMethod",
    "RequestCache",
    "RequestExecutor",
    "ResponseFormat",
    "decode",
]
