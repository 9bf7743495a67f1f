"""Loader rule dispatch and chain application.

:class:`LoaderChain` owns the fixed rule set of a build. For every source
file it picks the first rule whose ``test`` matches and whose ``exclude``
patterns do not, then threads the file's text through the rule's
transforms left to right. The last stage's text becomes either a
:class:`~assetline.models.BundleContribution` or, for rules with
``extract`` set, an :class:`~assetline.models.ExtractionEmission`.

Rule patterns use gitignore-compatible matching via :mod:`pathspec`,
evaluated against the file path relative to the source root.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

import pathspec

from assetline.cache import LoaderCache
from assetline.exceptions import AssetlineError, CompileError, ConfigurationError
from assetline.loaders.base import LoaderContext, Transform
from assetline.models import (
    BuildMode,
    BundleContribution,
    ExtractionEmission,
    LoaderRuleConfig,
    ModuleResult,
    SourceFile,
)

logger = logging.getLogger(__name__)

_GLOB_CHARS = frozenset("*?[/")


@dataclass
class _CompiledRule:
    rule: LoaderRuleConfig
    content_type: Optional[str]
    test_spec: Optional[pathspec.PathSpec]
    exclude_spec: Optional[pathspec.PathSpec]


def _is_glob(test: str) -> bool:
    return any(c in _GLOB_CHARS for c in test)


def _normalise_type(test: str) -> str:
    return test.strip().lstrip(".").lower()


def validate_rules(rules: Sequence[LoaderRuleConfig], transforms: dict[str, Transform]) -> None:
    """Check a rule set before any work begins.

    Raises:
        ConfigurationError: If a rule names an unknown transform, or two
            rules test the same content type (first-match dispatch would
            silently ignore the second).
    """
    seen: dict[str, int] = {}
    for index, rule in enumerate(rules):
        for name in rule.use:
            if name not in transforms:
                raise ConfigurationError(
                    f"Loader rule '{rule.test}' uses unknown transform '{name}' "
                    f"(available: {', '.join(sorted(transforms))})"
                )
        if _is_glob(rule.test):
            continue
        key = _normalise_type(rule.test)
        if key in seen:
            raise ConfigurationError(
                f"Loader rules #{seen[key] + 1} and #{index + 1} both match "
                f"content type '{key}'"
            )
        seen[key] = index


def style_injection(css: str, relative_path: str) -> str:
    """Return a JS snippet that injects *css* as a ``<style>`` element at runtime."""
    return (
        "(function () {\n"
        '  var style = document.createElement("style");\n'
        f'  style.setAttribute("data-source", {json.dumps(relative_path)});\n'
        f"  style.appendChild(document.createTextNode({json.dumps(css)}));\n"
        "  document.head.appendChild(style);\n"
        "})();\n"
    )


class LoaderChain:
    """Dispatch source files to their rule and run its transform chain.

    Args:
        rules: Ordered rule set; first match wins.
        transforms: Transform instances keyed by ``use`` name.
        source_root: Project root; rule patterns match paths relative to it.
        mode: The build mode, passed to every transform.
        debug: Mode-derived debug flag. A rule's ``debug`` option is only
            honoured when this is ``True``.
        timeout: Seconds allowed for each external invocation.
        extract: When ``False``, rules with ``extract`` set produce a
            runtime style-injection snippet instead of an extraction.
        cache: Optional loader cache.

    Raises:
        ConfigurationError: If the rule set fails :func:`validate_rules`.
    """

    def __init__(
        self,
        rules: Sequence[LoaderRuleConfig],
        transforms: dict[str, Transform],
        source_root: Path,
        mode: BuildMode = BuildMode.DEVELOPMENT,
        debug: bool = True,
        timeout: float = 120.0,
        extract: bool = True,
        cache: Optional[LoaderCache] = None,
    ) -> None:
        validate_rules(rules, transforms)
        self._transforms = transforms
        self._root = source_root
        self._mode = mode
        self._debug = debug
        self._timeout = timeout
        self._extract = extract
        self._cache = cache
        self._rules = [
            _CompiledRule(
                rule=rule,
                content_type=None if _is_glob(rule.test) else _normalise_type(rule.test),
                test_spec=(
                    pathspec.PathSpec.from_lines("gitignore", [rule.test])
                    if _is_glob(rule.test)
                    else None
                ),
                exclude_spec=(
                    pathspec.PathSpec.from_lines("gitignore", rule.exclude)
                    if rule.exclude
                    else None
                ),
            )
            for rule in rules
        ]

    def _relative(self, source: SourceFile) -> str:
        try:
            return source.path.relative_to(self._root).as_posix()
        except ValueError:
            return source.path.as_posix()

    def match(self, source: SourceFile) -> Optional[LoaderRuleConfig]:
        """Return the first rule that applies to *source*, or ``None``."""
        rel = self._relative(source)
        for compiled in self._rules:
            if compiled.content_type is not None:
                if compiled.content_type != source.content_type:
                    continue
            elif compiled.test_spec is None or not compiled.test_spec.match_file(rel):
                continue
            if compiled.exclude_spec is not None and compiled.exclude_spec.match_file(rel):
                continue
            return compiled.rule
        return None

    def options_for(self, rule: LoaderRuleConfig) -> dict[str, Any]:
        """Merge a rule's static options with the mode-derived flags."""
        options = dict(rule.options)
        options["debug"] = self._debug and bool(rule.options.get("debug", True))
        return options

    def apply(self, source: SourceFile, text: str) -> ModuleResult:
        """Run *source* through its rule's transform chain.

        Unmatched files pass through unchanged as a bundle contribution.

        Raises:
            CompileError: If any transform fails. Unexpected exceptions
                from a transform are wrapped with the file path.
        """
        rule = self.match(source)
        rel = self._relative(source)
        if rule is None:
            return BundleContribution(value=text)

        options = self.options_for(rule)
        key: Optional[str] = None
        if self._cache is not None and self._cache.enabled:
            key = LoaderCache.make_key(rule.use, options, self._mode.value, source.path, text)
            hit = self._cache.get(key)
            if hit is not None:
                logger.debug("Loader cache hit for %s", rel)
                return self._finish(rule, hit, rel)

        ctx = LoaderContext(
            source=source,
            source_root=self._root,
            options=options,
            mode=self._mode,
            timeout=self._timeout,
        )
        stages = [self._transforms[name] for name in rule.use]
        out = text
        for index, stage in enumerate(stages):
            ctx.preceding = tuple(stages[:index])
            try:
                out = stage.transform(out, ctx)
            except AssetlineError:
                raise
            except Exception as exc:
                raise CompileError(rel, f"{stage.name or type(stage).__name__}: {exc}") from exc

        if key is not None and self._cache is not None:
            self._cache.set(key, out, [source.path, *ctx.dependencies])
        return self._finish(rule, out, rel)

    def _finish(self, rule: LoaderRuleConfig, text: str, rel: str) -> ModuleResult:
        if rule.extract is None:
            return BundleContribution(value=text)
        if self._extract:
            return ExtractionEmission(kind=rule.extract, text=text)
        return BundleContribution(value=style_injection(text, rel))
