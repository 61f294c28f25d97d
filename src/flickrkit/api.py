"""The API context: credentials, settings, cache, and the call facade.

:class:`ApiContext` is the object every collaborator holds. It owns

- the :class:`~flickrkit.models.Credentials` (key, secret, token pair),
- the :class:`~flickrkit.models.RequestConfig` (format, HTTP method,
  endpoint, callback URL),
- the :class:`~flickrkit.cache.RequestCache` and the file it is saved to,
- the :class:`httpx.Client` used for network calls,

and gives out :class:`~flickrkit.client.RequestExecutor` instances bound to
that state. There is no process-wide instance; create one per session and
pass it where it is needed.

Sample usage::

    from flickrkit import ApiContext

    with ApiContext(API_KEY, API_SECRET, cache_file="flickr.json") as api:
        frob = api.request_frob()
        print(api.build_auth_url("write", frob))
        # ... the user approves the frob in a browser ...
        api.set_token_from_frob(frob)
        resp = api.execute_method("flickr.test.echo", {"foo": "bar"})
        print(resp)

Leaving the ``with`` block (or calling :meth:`ApiContext.close`) saves the
cache to ``cache_file`` when one is configured.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Mapping, Optional

import httpx

from flickrkit.auth.canonical import canonicalize
from flickrkit.auth.signer import api_signature
from flickrkit.cache import RequestCache
from flickrkit.client import FlickrResponse, RequestExecutor
from flickrkit.config import default_cache_file, resolve_endpoint_url
from flickrkit.exceptions import ConfigError, FlickrKitError, StoreCorruptError
from flickrkit.models import (
    Credentials,
    HTTPMethod,
    RequestConfig,
    ResponseFormat,
)
from flickrkit.output import get_output

AUTH_URL = "https://www.flickr.com/services/auth/"
"""Page a user visits to approve a frob for this API key."""

AUTH_PERMS = ("read", "write", "delete")


class ApiContext:
    """A connection to the Flickr API for one set of credentials.

    Args:
        key: Flickr API key.
        secret: The shared secret that goes with *key*.
        token: OAuth access token, if already authenticated.
        token_secret: OAuth access token secret.
        format: Response format to request (``rest``/``xml``, ``json``,
            ``php_serial``/``php``).
        http_method: HTTP verb calls are sent with. A ``HEAD`` response has
            no body, so uncached calls made with it raise the format's parse
            error (see :meth:`set_http_method`).
        endpoint_url: REST endpoint. Defaults to ``$FLICKRKIT_ENDPOINT_URL``
            or the public Flickr endpoint.
        callback_url: Sent as ``oauth_callback`` when non-empty.
        cache: Cache to use. A fresh :class:`RequestCache` by default.
        cache_file: File the cache is loaded from now and saved to on close.
        persist_cache: When no *cache_file* is given, use the per-user
            default ($XDG_CACHE_HOME/flickrkit/responses.json).
        timeout: HTTP timeout in seconds.
        verify_ssl: Verify TLS certificates.
        transport: Custom :mod:`httpx` transport (tests use
            :class:`httpx.MockTransport`).

    Raises:
        ConfigError: If *key* or *secret* is missing, or the format or HTTP
            method is not recognised.
    """

    def __init__(
        self,
        key: Optional[str],
        secret: Optional[str],
        token: Optional[str] = None,
        token_secret: Optional[str] = None,
        format: ResponseFormat | str = ResponseFormat.REST,
        *,
        http_method: HTTPMethod | str = HTTPMethod.GET,
        endpoint_url: Optional[str] = None,
        callback_url: str = "",
        cache: Optional[RequestCache] = None,
        cache_file: Optional[str | Path] = None,
        persist_cache: bool = False,
        timeout: float = 30,
        verify_ssl: bool = True,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not key:
            raise ConfigError("Must provide a Flickr API key.")
        if not secret:
            raise ConfigError("Must provide a Flickr API secret.")

        self._lock = threading.RLock()
        self._credentials = Credentials(
            key=str(key),
            secret=str(secret),
            token=token or None,
            token_secret=token_secret or None,
        )
        self._config = RequestConfig(
            format=ResponseFormat.parse(format),
            http_method=HTTPMethod.parse(http_method),
            endpoint_url=resolve_endpoint_url(endpoint_url),
            callback_url=callback_url,
            timeout=timeout,
            verify_ssl=verify_ssl,
        )
        self._cache = cache if cache is not None else RequestCache()
        self._cache_file: Optional[Path] = None
        self._transport = transport
        self._http_client: Optional[httpx.Client] = None
        self._user_id: Optional[str] = None
        self._token_generation = 0
        self._executor = RequestExecutor(self)

        if cache_file:
            self.set_cache_file(cache_file)
        elif persist_cache:
            self.set_cache_file(default_cache_file())

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> ApiContext:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def close(self) -> None:
        """Save the cache to the cache file (if one is set) and close the HTTP client."""
        try:
            if self._cache_file is not None:
                self.save_cache()
        finally:
            with self._lock:
                client, self._http_client = self._http_client, None
            if client is not None:
                client.close()

    # ------------------------------------------------------------------ #
    # State read by executors
    # ------------------------------------------------------------------ #

    @property
    def credentials(self) -> Credentials:
        """The current credentials (an immutable snapshot)."""
        with self._lock:
            return self._credentials

    @property
    def config(self) -> RequestConfig:
        """A copy of the current request settings."""
        with self._lock:
            return self._config.model_copy()

    @property
    def cache(self) -> RequestCache:
        """The response cache used by this context."""
        with self._lock:
            return self._cache

    @property
    def http_client(self) -> httpx.Client:
        """The :class:`httpx.Client` used for network calls, created on first use."""
        with self._lock:
            if self._http_client is None:
                self._http_client = httpx.Client(
                    timeout=self._config.timeout,
                    verify=self._config.verify_ssl,
                    transport=self._transport,
                    follow_redirects=True,
                )
            return self._http_client

    # ------------------------------------------------------------------ #
    # Credentials
    # ------------------------------------------------------------------ #

    def get_key(self) -> str:
        return self.credentials.key

    def get_secret(self) -> str:
        return self.credentials.secret

    def get_token(self) -> Optional[str]:
        return self.credentials.token

    def set_token(self, token: Optional[str]) -> None:
        """Replace the access token.

        The memoized user id is cleared, since a new token likely belongs to
        a different user.
        """
        with self._lock:
            self._credentials = self._credentials.model_copy(update={"token": token or None})
            self._user_id = None
            self._token_generation += 1

    def get_token_secret(self) -> Optional[str]:
        return self.credentials.token_secret

    def set_token_secret(self, token_secret: Optional[str]) -> None:
        with self._lock:
            self._credentials = self._credentials.model_copy(
                update={"token_secret": token_secret or None}
            )

    # ------------------------------------------------------------------ #
    # Request settings
    # ------------------------------------------------------------------ #

    def get_format(self) -> ResponseFormat:
        return self.config.format

    def set_format(self, format: ResponseFormat | str) -> None:
        """Set the response format. Accepts ``xml`` and ``php`` as aliases.

        Raises:
            ConfigError: If *format* is not recognised.
        """
        parsed = ResponseFormat.parse(format)
        with self._lock:
            self._config.format = parsed

    def get_http_method(self) -> HTTPMethod:
        return self.config.http_method

    def set_http_method(self, method: HTTPMethod | str) -> None:
        """Set the HTTP verb calls are sent with.

        ``HEAD`` only checks that the endpoint answers: the server returns
        headers and no payload, so an uncached call raises the parse error
        of the configured format (for example
        :class:`~flickrkit.exceptions.XmlParseError` with empty ``data``)
        and nothing is cached. Cached answers are still served.

        Raises:
            ConfigError: If *method* is not GET, POST, DELETE, HEAD or PATCH.
        """
        parsed = HTTPMethod.parse(method)
        with self._lock:
            self._config.http_method = parsed

    def get_callback_url(self) -> str:
        return self.config.callback_url

    def set_callback_url(self, callback_url: str) -> None:
        with self._lock:
            self._config.callback_url = str(callback_url)

    def get_endpoint_url(self) -> str:
        return self.config.endpoint_url

    def set_endpoint_url(self, endpoint_url: str) -> None:
        with self._lock:
            self._config.endpoint_url = str(endpoint_url)

    # ------------------------------------------------------------------ #
    # Cache
    # ------------------------------------------------------------------ #

    def set_cache(self, cache: RequestCache) -> None:
        """Use *cache* from now on. Any entries it already holds will be served."""
        with self._lock:
            self._cache = cache

    def get_cache_file(self) -> Optional[Path]:
        with self._lock:
            return self._cache_file

    def set_cache_file(self, path: str | Path) -> None:
        """Set the file the cache is saved to on :meth:`close`.

        If the file already exists it is loaded now and replaces the current
        cache. A file that does not hold a valid store is discarded with a
        warning and an empty cache is used instead.
        """
        target = Path(path)
        cache: Optional[RequestCache] = None
        if target.is_file():
            current = self.cache
            try:
                cache = RequestCache.load_from(target, key_filter=current.key_filter)
            except StoreCorruptError as exc:
                get_output().warning(f"Ignoring unreadable cache file: {exc}")
                cache = RequestCache(key_filter=current.key_filter)
        with self._lock:
            self._cache_file = target
            if cache is not None:
                self._cache = cache

    def save_cache(self, path: Optional[str | Path] = None) -> None:
        """Write the cache to *path*, or to the configured cache file.

        Raises:
            ConfigError: If no path is given and no cache file is configured.
        """
        target = Path(path) if path is not None else self.get_cache_file()
        if target is None:
            raise ConfigError("No cache file configured")
        self.cache.save_to(target)

    def add_response_to_cache(
        self,
        method: str,
        params: Optional[Mapping[str, Any]],
        payload: str,
        expires_at: Optional[float] = None,
    ) -> str:
        """Seed the cache with *payload* as the answer to *method* with *params*.

        The payload is stored under the same key :meth:`execute_method`
        would derive, in the current format. Useful for tests and offline use.

        Returns:
            The cache key the payload was stored under.
        """
        executor = self.create_executor()
        config = self.config
        call_params = executor.build_params(method, params, self.credentials, config)
        cache = self.cache
        key = cache.derive_key(method, call_params)
        cache.set(key, payload, expires_at=expires_at, format=config.format)
        return key

    # ------------------------------------------------------------------ #
    # Calls
    # ------------------------------------------------------------------ #

    def create_executor(self, **kwargs: Any) -> RequestExecutor:
        """Return a :class:`RequestExecutor` bound to this context.

        Keyword arguments are passed through (``nonce_factory``, ``clock``).
        """
        return RequestExecutor(self, **kwargs)

    def execute_method(
        self,
        method: str,
        params: Optional[Mapping[str, Any]] = None,
        allow_cached: bool = True,
        throw_on_failure: bool = False,
    ) -> FlickrResponse:
        """Call a Flickr API method. See :meth:`RequestExecutor.execute`."""
        return self._executor.execute(
            method,
            params,
            allow_cached=allow_cached,
            throw_on_failure=throw_on_failure,
        )

    # ------------------------------------------------------------------ #
    # Authentication flows
    # ------------------------------------------------------------------ #

    def request_frob(self) -> str:
        """Request a frob to hand to :meth:`build_auth_url`.

        Raises:
            MethodFailure: If Flickr refuses the request.
        """
        resp = self.execute_method("flickr.auth.getFrob", allow_cached=False, throw_on_failure=True)
        return resp.find("frob")

    def build_auth_url(self, perms: str, frob: str = "") -> str:
        """Build the URL a user visits to grant this key *perms*.

        If *frob* is omitted Flickr falls back to the callback URL registered
        for the key.

        Raises:
            ConfigError: If *perms* is not ``read``, ``write`` or ``delete``.
        """
        if perms not in AUTH_PERMS:
            raise ConfigError(f"Unknown permission level: {perms!r}")
        params = {"api_key": self.get_key(), "perms": perms}
        if frob:
            params["frob"] = str(frob)
        params["api_sig"] = api_signature(self.get_secret(), params)
        return f"{AUTH_URL}?{canonicalize(params)}"

    def set_token_from_frob(self, frob: str) -> str:
        """Exchange an approved *frob* for a token and start using it.

        The user id returned with the token is memoized.

        Returns:
            The new token.

        Raises:
            MethodFailure: If the frob was not approved or has expired.
        """
        resp = self.execute_method(
            "flickr.auth.getToken",
            {"frob": str(frob)},
            allow_cached=False,
            throw_on_failure=True,
        )
        token = resp.find("auth.token")
        user_id = resp.find("auth.user.nsid")
        with self._lock:
            self.set_token(token)
            self._user_id = user_id or None
        return token

    def get_user_id(self) -> Optional[str]:
        """Return the id of the authenticated user, or ``None``.

        The result is memoized until the token changes. Any failure to look
        it up -- bad token, connection problem, unreadable response -- is
        reported as ``None`` rather than raised.
        """
        with self._lock:
            if self._user_id is not None:
                return self._user_id
            generation = self._token_generation

        try:
            resp = self.execute_method("flickr.auth.oauth.checkToken", throw_on_failure=True)
            user_id = resp.find("oauth.user.nsid") or None
        except FlickrKitError as exc:
            get_output().debug(f"Authenticated user lookup failed: {exc}")
            return None

        with self._lock:
            if generation == self._token_generation:
                self._user_id = user_id
        return user_id

    def is_auth_valid(self) -> bool:
        """Whether the current token identifies a user."""
        return self.get_user_id() is not None
