"""Response caching for flickrkit.

This package provides :class:`RequestCache`, an in-process store of raw
API responses keyed by a normalized request identity (volatile OAuth
parameters filtered out), with optional LRU bounding and JSON file
persistence.

The cache is consumed by :class:`~flickrkit.client.RequestExecutor` and
owned by :class:`~flickrkit.api.ApiContext`, which saves it to its
configured cache file on close.
"""

from flickrkit.cache.cache import RequestCache

__all__ = ["RequestCache"]
