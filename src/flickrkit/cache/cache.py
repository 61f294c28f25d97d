"""Response cache keyed by a normalized request identity.

Every signed Flickr call differs from the previous one because of its nonce,
timestamp and signature. :class:`RequestCache` therefore derives its keys
from the call's parameters with those *volatile* names filtered out, so two
identical logical calls land on the same entry::

    cache.derive_key("flickr.test.echo", {"foo": "bar", "oauth_nonce": "1"})
    == cache.derive_key("flickr.test.echo", {"foo": "bar", "oauth_nonce": "2"})

Entries hold the raw payload text and its format, never a decoded object,
so a cache built by one process can be persisted with :meth:`save_to` and
read back by another with :meth:`load_from`.

All state is guarded by a single re-entrant lock. The executor only takes it
to look up or store an entry, never across network I/O.

See Also:
    :class:`~flickrkit.models.CacheEntry` -- one stored response.
    :class:`~flickrkit.models.CacheStore` -- the persisted file shape.
"""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping, Optional

from pydantic import ValidationError

from flickrkit.auth.canonical import canonicalize
from flickrkit.auth.signer import VOLATILE_PARAMS
from flickrkit.config import atomic_write
from flickrkit.exceptions import StoreCorruptError
from flickrkit.models import CacheEntry, CacheStore, ResponseFormat
from flickrkit.output import get_output


class RequestCache:
    """Thread-safe store of raw API responses.

    Args:
        key_filter: Parameter names to ignore when deriving keys. Defaults
            to the OAuth nonce, timestamp and signature.
        max_entries: Optional bound on the number of entries. When set, the
            least recently used entry is evicted to make room.
        clock: Time source used for expiry checks.

    Example::

        from flickrkit.cache import RequestCache

        cache = RequestCache()
        key = cache.derive_key("flickr.test.echo", {"foo": "bar"})
        cache.set(key, '<rsp stat="ok"/>', format="rest")
        entry = cache.get(key)
    """

    def __init__(
        self,
        key_filter: Optional[Iterable[str]] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_entries is not None and max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self._lock = threading.RLock()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._key_filter: frozenset[str] = frozenset(
            VOLATILE_PARAMS if key_filter is None else key_filter
        )
        self._max_entries = max_entries
        self._clock = clock

    # ------------------------------------------------------------------ #
    # Key derivation
    # ------------------------------------------------------------------ #

    @property
    def key_filter(self) -> frozenset[str]:
        """Parameter names excluded from key derivation."""
        with self._lock:
            return self._key_filter

    def set_key_filter(self, names: Iterable[str]) -> None:
        """Replace the set of parameter names excluded from key derivation.

        Entries already stored keep the keys they were stored under.
        """
        with self._lock:
            self._key_filter = frozenset(names)

    def derive_key(self, method: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """Return the cache identity for a call to *method* with *params*.

        Filtered names are dropped, ``method`` is added, and the remainder is
        canonicalized. The canonical string is the key.
        """
        with self._lock:
            excluded = self._key_filter
        identity = {
            name: value
            for name, value in (params or {}).items()
            if name not in excluded and name != "method"
        }
        identity["method"] = method
        return canonicalize(identity)

    # ------------------------------------------------------------------ #
    # Get / set
    # ------------------------------------------------------------------ #

    def get(self, key: str) -> Optional[CacheEntry]:
        """Look up *key*.

        Returns:
            The stored :class:`~flickrkit.models.CacheEntry`, or ``None`` on
            a miss. Expired entries are removed and reported as a miss.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.model_copy()

    def set(
        self,
        key: str,
        payload: str,
        expires_at: Optional[float] = None,
        format: ResponseFormat | str = ResponseFormat.REST,
    ) -> None:
        """Insert or overwrite the entry for *key*.

        Args:
            key: A key produced by :meth:`derive_key`.
            payload: The raw response text.
            expires_at: Optional POSIX timestamp after which the entry is stale.
            format: The wire format *payload* is in.
        """
        entry = CacheEntry(
            key=key,
            payload=payload,
            format=ResponseFormat.parse(format),
            expires_at=expires_at,
        )
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            self._evict()

    def invalidate(self, key: str) -> None:
        """Remove the entry for *key*. Missing keys are ignored."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Remove all entries from the cache."""
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        """Return a snapshot of the stored keys, least recently used first."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``size`` (number of entries), ``max_entries``
            (``None`` when unbounded), and ``key_filter`` (sorted names).
        """
        with self._lock:
            return {
                "size": len(self._entries),
                "max_entries": self._max_entries,
                "key_filter": sorted(self._key_filter),
            }

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def save_to(self, path: str | Path) -> None:
        """Write the whole store to *path*.

        A consistent snapshot is taken under the lock; the file itself is
        written afterwards through a temp file and an atomic rename.
        """
        with self._lock:
            store = CacheStore(entries=dict(self._entries))
        target = Path(path)
        atomic_write(target, store.model_dump_json(indent=2))
        get_output().debug(f"Saved {len(store.entries)} cached responses to {target}")

    @classmethod
    def load_from(
        cls,
        path: str | Path,
        key_filter: Optional[Iterable[str]] = None,
        max_entries: Optional[int] = None,
    ) -> RequestCache:
        """Build a cache from a file written by :meth:`save_to`.

        Raises:
            FileNotFoundError: If *path* does not exist.
            StoreCorruptError: If the file is not a valid persisted store.
        """
        target = Path(path)
        try:
            raw = target.read_text(encoding="utf-8")
        except UnicodeDecodeError as exc:
            raise StoreCorruptError(f"Cache file {target} is not valid UTF-8 text") from exc
        try:
            store = CacheStore.model_validate_json(raw)
        except ValidationError as exc:
            raise StoreCorruptError(f"Cache file {target} is not a valid store: {exc}") from exc

        cache = cls(key_filter=key_filter, max_entries=max_entries)
        with cache._lock:
            for key, entry in store.entries.items():
                if entry.key != key:
                    raise StoreCorruptError(
                        f"Cache file {target} has an entry filed under the wrong key: {key!r}"
                    )
                cache._entries[key] = entry
            cache._evict()
        get_output().debug(f"Loaded {len(cache)} cached responses from {target}")
        return cache

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _evict(self) -> None:
        """Drop least recently used entries beyond ``max_entries``. Caller holds the lock."""
        if self._max_entries is None:
            return
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)
