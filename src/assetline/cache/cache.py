"""Disk-based cache for loader chain output.

Uses :mod:`diskcache` to persist the text a file's loader chain produced, so
unchanged Elm modules are not recompiled on every build. Only the chain's
output is stored; whether it becomes a bundle contribution, an extraction or
a style-injection snippet is decided again on every build.

Cache keys are SHA-256 hashes of the transform names, the merged options,
the build mode, the file's absolute path, and its content. The cache
directory is shared by every project on the machine, so the absolute path
keeps two projects with the same layout apart. Because a transform may read
more files than the one it was given (``@import``, Elm imports), every entry
also records the SHA-256 of each dependency; an entry whose dependencies
changed is treated as a miss.

See Also:
    :class:`~assetline.models.CacheConfig` -- the Pydantic model that
    controls ``enabled``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Optional

import diskcache

from assetline.models import CacheConfig


def _file_digest(path: Path) -> Optional[str]:
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()
    except OSError:
        return None


class LoaderCache:
    """Disk-backed cache of loader chain output text.

    Args:
        cache_dir: Root directory for the cache. A ``loaders/``
            subdirectory is created inside it.
        config: Cache configuration (``enabled`` flag).

    Example::

        cache = LoaderCache(get_cache_dir(), CacheConfig(enabled=True))
        key = LoaderCache.make_key(["elm"], {"debug": True}, "development",
                                   "/work/app/src/Main.elm", source_text)
        hit = cache.get(key)
    """

    def __init__(self, cache_dir: str | Path, config: CacheConfig) -> None:
        self._config = config
        self._cache: Optional[diskcache.Cache] = None
        self._cache_dir = Path(cache_dir)
        if config.enabled:
            self._cache = diskcache.Cache(str(self._cache_dir / "loaders"))

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    def get(self, key: str) -> Optional[str]:
        """Look up cached chain output.

        Returns:
            The cached text, or ``None`` on a miss, when a recorded
            dependency changed, or when caching is disabled.
        """
        if self._cache is None:
            return None
        entry = self._cache.get(key)
        if entry is None:
            return None
        for dep, digest in entry.get("deps", {}).items():
            if _file_digest(Path(dep)) != digest:
                return None
        return entry["text"]

    def set(self, key: str, text: str, dependencies: list[Path]) -> None:
        """Store *text* together with the digests of its *dependencies*."""
        if self._cache is None:
            return
        deps: dict[str, str] = {}
        for dep in dependencies:
            digest = _file_digest(dep)
            if digest is not None:
                deps[str(dep)] = digest
        self._cache.set(key, {"text": text, "deps": deps})

    def clear(self) -> None:
        """Remove all entries from the cache."""
        if self._cache is not None:
            self._cache.clear()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``enabled`` (bool), and when enabled:
            ``size`` (number of entries) and ``directory`` (str path).
        """
        if self._cache is None:
            return {"enabled": False}
        return {
            "enabled": True,
            "size": len(self._cache),
            "directory": str(self._cache_dir / "loaders"),
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()

    @staticmethod
    def make_key(
        use: list[str],
        options: dict[str, Any],
        mode: str,
        source_path: str | Path,
        text: str,
    ) -> str:
        """Generate a cache key from the chain, options, mode, absolute path, and content."""
        raw = "|".join(
            [
                ",".join(use),
                json.dumps(options, sort_keys=True, default=str),
                mode,
                Path(source_path).resolve().as_posix(),
                hashlib.sha256(text.encode("utf-8")).hexdigest(),
            ]
        )
        return hashlib.sha256(raw.encode()).hexdigest()
