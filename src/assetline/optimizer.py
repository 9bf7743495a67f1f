"""Release-mode optimizer stage.

The optimizer runs over an artifact's complete, sealed text and returns the
text to publish. It is selected once per build by :func:`build_optimizer`:
development builds get :class:`IdentityOptimizer`, so their output is
byte-for-byte the unoptimized extraction; release builds get
:class:`ReleaseOptimizer`.

Every optimizer must be idempotent: ``optimize(k, optimize(k, x)) ==
optimize(k, x)``. The built-in :func:`minify_css` satisfies that; an
external JS minifier configured through ``optimizer.js_command`` is
trusted to.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod

from assetline.loaders.base import run_external
from assetline.models import OptimizerConfig, PipelineConfig

_STRING_OR_COMMENT_RE = re.compile(
    r"(\"(?:\\.|[^\"\\])*\"|'(?:\\.|[^'\\])*')|/\*.*?\*/", re.DOTALL
)
_PLACEHOLDER_RE = re.compile(r"\x00(\d+)\x00")
_WHITESPACE_RE = re.compile(r"\s+")
_SPACE_BEFORE_RE = re.compile(r" ([{};,>])")
_SPACE_AFTER_RE = re.compile(r"([{};:,>}]) ")
_REPEATED_SEMICOLON_RE = re.compile(r";{2,}")
_TRAILING_SEMICOLON_RE = re.compile(r";}")


def minify_css(text: str) -> str:
    """Minify a stylesheet without changing its meaning.

    Removes comments, collapses whitespace, drops whitespace around
    ``{ } ; , >`` (and after ``:``) and the last semicolon of each block.
    String literals are preserved verbatim. Whitespace around ``+`` and
    ``-`` is kept because ``calc()`` requires it.
    """
    strings: list[str] = []

    def _stash(match: re.Match[str]) -> str:
        if match.group(1) is None:
            return " "
        strings.append(match.group(1))
        return f"\x00{len(strings) - 1}\x00"

    body = _STRING_OR_COMMENT_RE.sub(_stash, text)
    body = _WHITESPACE_RE.sub(" ", body)
    body = _SPACE_BEFORE_RE.sub(r"\1", body)
    body = _SPACE_AFTER_RE.sub(r"\1", body)
    body = _REPEATED_SEMICOLON_RE.sub(";", body)
    body = _TRAILING_SEMICOLON_RE.sub("}", body)
    body = body.strip()
    return _PLACEHOLDER_RE.sub(lambda m: strings[int(m.group(1))], body)


class Optimizer(ABC):
    """Post-processing applied to a fully built artifact."""

    @abstractmethod
    def optimize(self, kind: str, text: str) -> str:
        """Return the optimized text for an artifact of *kind*."""


class IdentityOptimizer(Optimizer):
    """Development-mode optimizer: returns its input unchanged."""

    def optimize(self, kind: str, text: str) -> str:
        return text


class ReleaseOptimizer(Optimizer):
    """Release-mode optimizer: CSS minification and an optional external JS minifier.

    Args:
        config: Optimizer settings from the project config.
        timeout: Seconds allowed for the external JS minifier.
    """

    def __init__(self, config: OptimizerConfig, timeout: float = 120.0) -> None:
        self._config = config
        self._timeout = timeout

    def optimize(self, kind: str, text: str) -> str:
        if kind == "css" and self._config.css:
            return minify_css(text)
        if kind == "js" and self._config.js_command:
            return run_external(
                self._config.js_command,
                text,
                timeout=self._timeout,
                file_path="<js bundle>",
            )
        return text


def build_optimizer(config: PipelineConfig) -> Optimizer:
    """Select the optimizer for a build; identity unless ``config.optimize``."""
    if not config.optimize:
        return IdentityOptimizer()
    return ReleaseOptimizer(config.optimizer, timeout=config.loader_timeout)
