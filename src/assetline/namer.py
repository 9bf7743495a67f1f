"""Artifact naming with optional content fingerprints.

Development builds produce fixed names (``main.js``) so a dev server and the
browser can cache and debug by a stable URL. Release builds embed a SHA-256
fingerprint of the *final* bytes (``main.3f2a9c81d0e4b7a6c5d1.js``): identical
content always yields the identical name, and any content change yields a
new one. The fingerprint must therefore be taken after the optimizer ran.
"""

from __future__ import annotations

import hashlib

from assetline.models import BuildMode, NamedArtifact

_EXTENSIONS = {
    "js": "js",
    "css": "css",
}


def fingerprint(content: bytes, length: int = 20) -> str:
    """Return the first *length* hex characters of the SHA-256 of *content*."""
    return hashlib.sha256(content).hexdigest()[:length]


class ArtifactNamer:
    """Compute physical file names for artifacts.

    Args:
        fingerprint_length: Number of hex characters kept from the digest.
        fingerprint: Force fingerprinted (``True``) or fixed (``False``)
            names regardless of the mode passed to :meth:`name`. ``None``
            fingerprints release builds only.
        directories: Mapping of artifact kind to its directory below the
            output root (e.g. ``{"js": "static/js", "css": "static/css"}``).
    """

    def __init__(
        self,
        fingerprint_length: int = 20,
        directories: dict[str, str] | None = None,
        fingerprint: bool | None = None,
    ) -> None:
        self._length = fingerprint_length
        self._fingerprint = fingerprint
        self._directories = dict(directories or {"js": "static/js", "css": "static/css"})

    def name(self, logical_name: str, kind: str, content: bytes, mode: BuildMode) -> str:
        """Return the bare file name for an artifact.

        Args:
            logical_name: Chunk name, e.g. ``"main"``.
            kind: Artifact kind; selects the extension.
            content: The fully transformed artifact bytes.
            mode: Release embeds a fingerprint, development does not,
                unless the namer was configured otherwise.

        Returns:
            ``{logical}.{ext}`` or ``{logical}.{fingerprint}.{ext}``.
        """
        ext = _EXTENSIONS.get(kind, kind)
        embed = self._fingerprint if self._fingerprint is not None else mode == BuildMode.RELEASE
        if embed:
            return f"{logical_name}.{fingerprint(content, self._length)}.{ext}"
        return f"{logical_name}.{ext}"

    def path_for(self, kind: str, filename: str) -> str:
        """Return *filename* placed in the directory configured for *kind*."""
        directory = self._directories.get(kind, "").strip("/")
        return f"{directory}/{filename}" if directory else filename

    def artifact(
        self, logical_name: str, kind: str, content: bytes, mode: BuildMode
    ) -> NamedArtifact:
        """Name *content* and wrap it in a :class:`~assetline.models.NamedArtifact`."""
        filename = self.path_for(kind, self.name(logical_name, kind, content, mode))
        return NamedArtifact(
            logical_name=logical_name, kind=kind, filename=filename, content=content
        )
