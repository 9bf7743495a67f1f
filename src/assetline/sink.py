"""Extraction sink for side-channel loader output.

Stylesheets are discovered as a side effect of walking the module graph,
but must be published as one coherent artifact. :class:`ExtractionSink`
collects fragments per ``(chunk, kind)`` while loaders run, possibly on
several worker threads, and produces the concatenated text in graph
discovery order when sealed.

Appends are serialised with a lock. When a fragment carries a graph
position, sealing stable-sorts by that position, so the sealed text is
independent of the order in which worker threads finished.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from assetline.exceptions import SinkSealedError


@dataclass
class _Fragment:
    position: int
    sequence: int
    text: str


class ExtractionSink:
    """Ordered, append-only buffers of extracted text.

    Lifecycle: created empty at build start, filled by :meth:`emit` during
    traversal, sealed with :meth:`seal` (or :meth:`seal_all`) once traversal
    completes. Sealing a key twice returns the same text; emitting into a
    sealed key raises :class:`~assetline.exceptions.SinkSealedError`.

    Example::

        sink = ExtractionSink()
        sink.emit("css", "body{margin:0}", position=2)
        sink.emit("css", ":root{--fg:#111}", position=1)
        sink.seal("css")   # ':root{--fg:#111}\\nbody{margin:0}\\n'
    """

    def __init__(self, separator: str = "\n") -> None:
        self._separator = separator
        self._lock = threading.Lock()
        self._fragments: dict[tuple[str, str], list[_Fragment]] = {}
        self._sealed: dict[tuple[str, str], str] = {}
        self._sequence = 0

    def emit(
        self,
        kind: str,
        text: str,
        position: Optional[int] = None,
        chunk: str = "main",
    ) -> None:
        """Append *text* to the buffer for *kind* in *chunk*.

        Args:
            kind: Artifact kind, e.g. ``"css"``.
            text: The fragment text.
            position: Graph position of the emitting module. Fragments
                without a position keep their append order.
            chunk: Owning chunk name.

        Raises:
            SinkSealedError: If the buffer was already sealed.
        """
        key = (chunk, kind)
        with self._lock:
            if key in self._sealed:
                raise SinkSealedError(
                    f"Cannot emit into sealed '{kind}' sink of chunk '{chunk}'"
                )
            self._sequence += 1
            pos = position if position is not None else self._sequence
            self._fragments.setdefault(key, []).append(
                _Fragment(position=pos, sequence=self._sequence, text=text)
            )

    def seal(self, kind: str, chunk: str = "main") -> str:
        """Seal the buffer for *kind* and return its ordered text.

        Each fragment is terminated by the separator so that concatenated
        stylesheets never run into each other.
        """
        key = (chunk, kind)
        with self._lock:
            if key in self._sealed:
                return self._sealed[key]
            fragments = sorted(
                self._fragments.get(key, []), key=lambda f: (f.position, f.sequence)
            )
            text = "".join(_terminate(f.text, self._separator) for f in fragments)
            self._sealed[key] = text
            return text

    def seal_all(self, chunk: str = "main") -> dict[str, str]:
        """Seal every kind that received fragments in *chunk*."""
        return {kind: self.seal(kind, chunk) for kind in self.kinds(chunk)}

    def kinds(self, chunk: str = "main") -> list[str]:
        """Return the kinds with at least one fragment, sorted by name."""
        with self._lock:
            return sorted(k for (c, k), frags in self._fragments.items() if c == chunk and frags)

    def is_sealed(self, kind: str, chunk: str = "main") -> bool:
        with self._lock:
            return (chunk, kind) in self._sealed


def _terminate(text: str, separator: str) -> str:
    if not separator or text.endswith(separator):
        return text
    return text + separator
