"""Disk-based loader result caching for assetline.

This package provides :class:`LoaderCache`, an optional persistent layer
that stores the text a source file's loader chain produced
using :mod:`diskcache`. Entries are keyed by the chain, options, build mode,
absolute file path and content, and are invalidated when any recorded
dependency changes.

The cache is consumed by :class:`~assetline.loaders.chain.LoaderChain` and
is controlled by the ``cache`` section of the project configuration
(:class:`~assetline.models.CacheConfig`).
"""

from assetline.cache.cache import LoaderCache

__all__ = ["LoaderCache"]
