"""Canonical Pydantic models shared across all assetline modules.

This is the single source of truth for data shapes in the project. Every other
module imports from here rather than defining its own models. The models fall
into three groups:

**Project configuration models** -- deserialised from ``assetline.json`` (or
``assetline.yaml``) at the source root:
    :class:`LoaderRuleConfig`, :class:`OutputConfig`, :class:`HtmlConfig`,
    :class:`OptimizerConfig`, :class:`CacheConfig`, :class:`PluginsConfig`,
    and :class:`ProjectConfig`.

**Per-build models** -- derived once per build and never persisted:
    :class:`BuildMode` and the frozen :class:`PipelineConfig` that is threaded
    through every stage of :mod:`assetline.pipeline`.

**Pipeline data models** -- produced while a build runs:
    :class:`SourceFile`, :class:`BundleContribution`,
    :class:`ExtractionEmission`, :class:`NamedArtifact`,
    :class:`HtmlDocument`, and :class:`BuildResult`.

All models use Pydantic v2. Defaults in :class:`ProjectConfig` reproduce the
layout of a conventional Elm single-page app: ``src/static/index.js`` as the
entry, ``src/static/index.html`` as the template, and ``build/`` as output.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# --- Build mode ---


class BuildMode(str, enum.Enum):
    """The two supported build modes.

    ``DEVELOPMENT`` keeps file names stable and passes ``debug`` to loaders.
    ``RELEASE`` runs the optimizer stage and fingerprints every file name.
    """

    DEVELOPMENT = "development"
    RELEASE = "release"


# --- Project config ---


class LoaderRuleConfig(BaseModel):
    """A declarative mapping from a content type to an ordered transform chain.

    ``test`` is either a content-type tag (``"elm"``, ``"css"``) or a
    gitignore-style glob matched against the file path relative to the
    source root (``"*.pcss"``). ``exclude`` patterns are always globs.

    Example::

        LoaderRuleConfig(
            test="elm",
            exclude=["elm-stuff/", "node_modules/"],
            use=["elm"],
            options={"verbose": True, "warn": True, "debug": True},
            no_parse=True,
        )
    """

    test: str = Field(description="Content type tag or path glob")
    exclude: list[str] = Field(
        default_factory=list, description="Gitignore-style path patterns to skip"
    )
    use: list[str] = Field(
        min_length=1, description="Transform names applied left to right"
    )
    options: dict[str, Any] = Field(
        default_factory=dict, description="Static options passed to every transform"
    )
    extract: Optional[str] = Field(
        default=None,
        description="Artifact kind to extract into (e.g. 'css'); None keeps the "
        "result in the JS bundle",
    )
    no_parse: bool = Field(
        default=False,
        description="Do not scan the transformed output for further imports",
    )


def default_rules() -> list[LoaderRuleConfig]:
    """Return the built-in rule set: Elm compilation and extracted CSS."""
    return [
        LoaderRuleConfig(
            test="elm",
            exclude=["elm-stuff/", "node_modules/"],
            use=["elm"],
            options={"verbose": True, "warn": True, "debug": True},
            no_parse=True,
        ),
        LoaderRuleConfig(
            test="css",
            use=["postcss", "css"],
            options={"import_loaders": 1},
            extract="css",
        ),
    ]


class OutputConfig(BaseModel):
    """Where and under which names artifacts are written."""

    path: str = Field(default="build", description="Output root, relative to the source root")
    name: str = Field(default="main", description="Logical name of the entry chunk")
    js_dir: str = Field(default="static/js")
    css_dir: str = Field(default="static/css")
    html_filename: str = Field(default="index.html")


class HtmlConfig(BaseModel):
    """HTML shell generation settings."""

    inject: Literal["head", "body"] = Field(
        default="head", description="Where artifact references are injected"
    )
    script_attribute: Optional[Literal["defer", "async", "module"]] = Field(
        default="defer", description="Loading attribute applied to every script tag"
    )


class OptimizerConfig(BaseModel):
    """Release-mode optimizer settings."""

    css: bool = Field(default=True, description="Minify extracted stylesheets")
    js_command: Optional[list[str]] = Field(
        default=None,
        description="External minifier reading JS on stdin, writing it to stdout",
    )


class CacheConfig(BaseModel):
    """Persistent loader cache settings."""

    enabled: bool = Field(default=False, description="Cache transform chain results")


class PluginsConfig(BaseModel):
    """Explicit plugin allow/deny lists."""

    enabled: list[str] = Field(default_factory=list)
    disabled: list[str] = Field(default_factory=list)


class ProjectConfig(BaseModel):
    """Per-project configuration persisted as ``assetline.json``.

    Loaded by :func:`~assetline.config.load_project_config`. Relative paths
    are resolved against the source root by
    :func:`~assetline.config.resolve_pipeline_config`.
    """

    entry: str = Field(default="src/static/index.js")
    template: str = Field(default="src/static/index.html")
    output: OutputConfig = Field(default_factory=OutputConfig)
    rules: list[LoaderRuleConfig] = Field(default_factory=default_rules)
    html: HtmlConfig = Field(default_factory=HtmlConfig)
    extract: bool = Field(
        default=True,
        description="Extract stylesheets into a separate artifact; when False "
        "they are injected at runtime from the JS bundle",
    )
    fingerprint_length: int = Field(default=20, ge=4, le=64)
    loader_timeout: float = Field(
        default=120.0, gt=0, description="Seconds before an external transform is killed"
    )
    workers: int = Field(default=4, ge=1, description="Parallel loader threads")
    optimizer: OptimizerConfig = Field(default_factory=OptimizerConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    plugins: PluginsConfig = Field(default_factory=PluginsConfig)


# --- Per-build config ---


class PipelineConfig(BaseModel):
    """Immutable, fully resolved configuration for a single build.

    Built once by :func:`~assetline.config.resolve_pipeline_config` from a
    :class:`ProjectConfig` and a :class:`BuildMode`. Every mode-dependent
    decision (naming, optimizer presence, loader debug flag) is captured
    here so no stage has to branch on the mode itself.
    """

    model_config = ConfigDict(frozen=True)

    mode: BuildMode
    source_root: Path
    output_root: Path
    entry: Path
    template: Path
    chunk_name: str = "main"
    js_dir: str = "static/js"
    css_dir: str = "static/css"
    html_filename: str = "index.html"
    rules: tuple[LoaderRuleConfig, ...] = ()
    html: HtmlConfig = Field(default_factory=HtmlConfig)
    extract: bool = True
    fingerprint: bool = False
    optimize: bool = False
    debug: bool = True
    fingerprint_length: int = 20
    loader_timeout: float = 120.0
    workers: int = 4
    optimizer: OptimizerConfig = Field(default_factory=OptimizerConfig)


# --- Pipeline data ---


_CONTENT_TYPES = {
    ".elm": "elm",
    ".css": "css",
    ".js": "js",
    ".mjs": "js",
    ".html": "html",
}


class SourceFile(BaseModel):
    """A read-only input file identified by absolute path and content type."""

    model_config = ConfigDict(frozen=True)

    path: Path
    content_type: str

    @classmethod
    def from_path(cls, path: str | Path) -> SourceFile:
        """Create a :class:`SourceFile`, deriving the content type from the extension."""
        p = Path(path).resolve()
        suffix = p.suffix.lower()
        content_type = _CONTENT_TYPES.get(suffix, suffix.lstrip("."))
        return cls(path=p, content_type=content_type)


class BundleContribution(BaseModel):
    """A module value that becomes part of the JS chunk."""

    model_config = ConfigDict(frozen=True)

    type: Literal["bundle"] = "bundle"
    value: str


class ExtractionEmission(BaseModel):
    """Text diverted into the extraction sink for *kind*."""

    model_config = ConfigDict(frozen=True)

    type: Literal["extraction"] = "extraction"
    kind: str
    text: str


ModuleResult = Union[BundleContribution, ExtractionEmission]


class NamedArtifact(BaseModel):
    """A final output file: logical name, physical file name, and bytes.

    ``filename`` is relative to the output root and always uses forward
    slashes, e.g. ``static/css/main.3f2a9c81d0e4b7a6c5d1.css``.
    """

    logical_name: str
    kind: str
    filename: str
    content: bytes = Field(default=b"", exclude=True, repr=False)

    @property
    def size(self) -> int:
        return len(self.content)


class HtmlDocument(BaseModel):
    """The generated HTML shell and the artifact files it references."""

    filename: str
    content: str = Field(repr=False)
    references: list[str] = Field(default_factory=list)


class BuildResult(BaseModel):
    """Summary returned by :meth:`~assetline.pipeline.Pipeline.build`."""

    mode: BuildMode
    output_root: str
    artifacts: list[NamedArtifact] = Field(default_factory=list)
    html: str
    modules: int = 0
    duration_seconds: float = 0.0
