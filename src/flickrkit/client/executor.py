"""Execution of a single Flickr API method call.

:class:`RequestExecutor` is the blocking call path used by
:class:`~flickrkit.api.ApiContext`. For one call it:

1. merges the caller's parameters with ``method``, ``format`` and the
   per-call OAuth parameters (consumer key, fresh nonce, timestamp,
   signature method, version, token when authenticated);
2. derives the cache key from that set, volatile names filtered out;
3. answers from the cache when allowed and an entry exists;
4. otherwise signs, sends the request with :mod:`httpx`, decodes the body,
   stores the raw payload in the cache, and returns the decoded response.

The cache lock is only held to look up or store an entry, never while the
request is in flight. Transport errors are not retried.

See Also:
    :mod:`flickrkit.client.response` for the decoders.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

import httpx

from flickrkit.auth.canonical import canonicalize
from flickrkit.auth.signer import make_nonce, oauth_params, sign_request, split_url
from flickrkit.client.response import FlickrResponse, decode
from flickrkit.exceptions import ConnectionError_, MethodFailure, ServerError
from flickrkit.models import Credentials, RequestConfig
from flickrkit.output import get_output

if TYPE_CHECKING:
    from flickrkit.api import ApiContext

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class RequestExecutor:
    """Runs API method calls for an :class:`~flickrkit.api.ApiContext`.

    Credentials, request settings, the cache and the HTTP client are read
    from the context at the start of every call, so a token rotated on the
    context applies to the next call made through any executor.

    Args:
        context: The owning API context.
        nonce_factory: Produces the ``oauth_nonce`` for each call.
        clock: Produces the ``oauth_timestamp`` for each call.

    Example::

        executor = context.create_executor()
        resp = executor.execute("flickr.test.echo", {"foo": "bar"})
    """

    def __init__(
        self,
        context: ApiContext,
        nonce_factory: Callable[[], str] = make_nonce,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._context = context
        self._nonce_factory = nonce_factory
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    def build_params(
        self,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        credentials: Optional[Credentials] = None,
        config: Optional[RequestConfig] = None,
    ) -> dict[str, Any]:
        """Return the full unsigned parameter set for a call to *method*.

        Protocol parameters are applied last so that caller-supplied values
        cannot replace them.
        """
        credentials = credentials or self._context.credentials
        config = config or self._context.config
        merged: dict[str, Any] = {k: v for k, v in (params or {}).items() if v is not None}
        merged.update(
            oauth_params(
                credentials.key,
                token=credentials.token,
                callback_url=config.callback_url,
                nonce_factory=self._nonce_factory,
                clock=self._clock,
            )
        )
        merged["format"] = config.format.value
        merged["method"] = method
        return merged

    def execute(
        self,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        allow_cached: bool = True,
        throw_on_failure: bool = False,
    ) -> FlickrResponse:
        """Call the API *method* with *params*.

        Args:
            method: Name of the Flickr API method, e.g. ``flickr.test.echo``.
            params: Method arguments. ``None`` values are dropped.
            allow_cached: Return a cached response for the same call if one
                exists.
            throw_on_failure: Raise :class:`~flickrkit.exceptions.MethodFailure`
                when Flickr reports ``stat="fail"``.

        Returns:
            The decoded :class:`~flickrkit.client.response.FlickrResponse`.

        Raises:
            ConnectionError_: On network / timeout errors.
            ServerError: On an HTTP error status.
            XmlParseError, JsonDecodeError, DeserializeError: On a malformed
                payload.
            MethodFailure: When requested via *throw_on_failure*.
        """
        credentials = self._context.credentials
        config = self._context.config
        cache = self._context.cache
        output = get_output()

        call_params = self.build_params(method, params, credentials, config)
        key = cache.derive_key(method, call_params)

        if allow_cached:
            entry = cache.get(key)
            if entry is not None:
                output.debug(f"Cache hit: {method}")
                return decode(entry.format, entry.payload, throw_on_failure=throw_on_failure)
            output.debug(f"Cache miss: {method}")

        base_url, endpoint_params = split_url(config.endpoint_url)
        signed = sign_request(
            {**endpoint_params, **call_params},
            config.http_method.value,
            base_url,
            credentials.secret,
            credentials.token_secret,
        )
        raw = self._send(config, base_url, signed)

        response = decode(config.format, raw)
        cache.set(key, raw, format=config.format)

        if throw_on_failure and not response.is_ok():
            raise MethodFailure(response.error_message or "", response.error_code or 0)
        return response

    def build_url(self, base_url: str, signed: Mapping[str, Any]) -> str:
        """Return the URL a query-string request is sent to.

        *base_url* carries no query of its own; any parameters the endpoint
        URL had are already part of *signed*.
        """
        query = canonicalize(signed)
        return f"{base_url}?{query}" if query else base_url

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _send(self, config: RequestConfig, base_url: str, signed: Mapping[str, Any]) -> str:
        """Perform the HTTP request and return the response body text."""
        client = self._context.http_client
        verb = config.http_method.value
        output = get_output()

        kwargs: dict[str, Any] = {"method": verb}
        if config.http_method.sends_body:
            kwargs["url"] = base_url
            kwargs["content"] = canonicalize(signed)
            kwargs["headers"] = {"Content-Type": _FORM_CONTENT_TYPE}
        else:
            kwargs["url"] = self.build_url(base_url, signed)

        output.debug(f"{verb} {base_url} method={signed.get('method')}")
        try:
            response = client.request(**kwargs)
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Connection to {config.endpoint_url} failed: {exc}") from exc

        if response.status_code >= 400:
            reason = response.reason_phrase or ""
            raise ServerError(
                f"HTTP {response.status_code} {reason}".rstrip(),
                status_code=response.status_code,
            )
        return response.text
