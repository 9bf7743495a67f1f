"""Cache commands -- inspect and clear the persistent loader cache.

The loader cache lives under the XDG cache directory and is shared by
every project on the machine; entries are keyed by content hash, so
clearing it is always safe.
"""

from __future__ import annotations

import typer

from assetline.output import format_response, info, success


cache_app = typer.Typer(no_args_is_help=True)


def _open_cache():  # noqa: ANN202
    from assetline.cache import LoaderCache
    from assetline.config import get_cache_dir
    from assetline.models import CacheConfig

    return LoaderCache(get_cache_dir(), CacheConfig(enabled=True))


@cache_app.command("stats")
def cache_stats() -> None:
    """Show the number of cached loader results and the cache location."""
    cache = _open_cache()
    try:
        format_response(cache.stats())
    finally:
        cache.close()


@cache_app.command("clear")
def cache_clear() -> None:
    """Remove every cached loader result."""
    cache = _open_cache()
    try:
        size = cache.stats().get("size", 0)
        cache.clear()
    finally:
        cache.close()
    if size:
        info(f"Removed {size} cached result(s)")
    success("Loader cache cleared")
