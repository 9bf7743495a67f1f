"""Publishing build output.

:class:`ArtifactWriter` writes a build's files in two phases. First every
file is *staged*: written to a temporary file next to its final location
and flushed to disk. Only when every file is staged are they *published*
with ``os.replace``, the HTML document last. A failure while staging
removes every temporary file and leaves the output directory exactly as it
was, so a failed build never produces a half-written bundle.

Existing files that the build does not produce are left alone.
"""

from __future__ import annotations

import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from assetline.exceptions import BuildIOError
from assetline.models import HtmlDocument, NamedArtifact

logger = logging.getLogger(__name__)


@dataclass
class _Staged:
    target: Path
    temp: Path


def _stage(path: Path, data: bytes) -> _Staged:
    """Write *data* to a temp file in *path*'s directory and fsync it."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd = tempfile.NamedTemporaryFile(
        mode="wb",
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
        delete=False,
    )
    try:
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
    except BaseException:
        fd.close()
        os.unlink(fd.name)
        raise
    fd.close()
    return _Staged(target=path, temp=Path(fd.name))


def _discard(staged: Sequence[_Staged]) -> None:
    for item in staged:
        try:
            item.temp.unlink()
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.warning("Could not remove temporary file %s: %s", item.temp, exc)


class ArtifactWriter:
    """Stage-then-publish writer rooted at the output directory.

    Args:
        output_root: Directory receiving the build; created if absent.
    """

    def __init__(self, output_root: Path) -> None:
        self._root = output_root

    def target(self, filename: str) -> Path:
        """Return the absolute path for an output-relative *filename*.

        Raises:
            BuildIOError: If *filename* would escape the output root.
        """
        path = (self._root / filename).resolve()
        root = self._root.resolve()
        if path != root and root not in path.parents:
            raise BuildIOError(str(path), "write", "path escapes the output directory")
        return path

    def write(
        self,
        artifacts: Sequence[NamedArtifact],
        html: Optional[HtmlDocument] = None,
    ) -> list[Path]:
        """Publish *artifacts*, then *html*.

        Returns:
            The published paths in publication order.

        Raises:
            BuildIOError: If any file cannot be staged or published. When
                staging fails nothing is published.
        """
        files: list[tuple[Path, bytes]] = [
            (self.target(a.filename), a.content) for a in artifacts
        ]
        if html is not None:
            files.append((self.target(html.filename), html.content.encode("utf-8")))

        staged: list[_Staged] = []
        for path, data in files:
            try:
                staged.append(_stage(path, data))
            except OSError as exc:
                _discard(staged)
                raise BuildIOError(str(path), "write", str(exc)) from exc

        published: list[Path] = []
        for index, item in enumerate(staged):
            try:
                os.replace(item.temp, item.target)
            except OSError as exc:
                _discard(staged[index:])
                raise BuildIOError(str(item.target), "write", str(exc)) from exc
            published.append(item.target)
            logger.debug("Published %s", item.target)
        return published
