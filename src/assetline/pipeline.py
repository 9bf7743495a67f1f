"""Pipeline driver: one build from source root to output directory.

:func:`build` is the single entry point. It resolves the build mode once,
loads the project config, discovers plugins, and hands a frozen
:class:`~assetline.models.PipelineConfig` to :class:`Pipeline`, which runs
the stages strictly in order:

==============  ==========================================================
Stage           Work
==============  ==========================================================
``configure``   Validate loader rules, entry file and HTML template.
``load``        Walk the module graph; run every module through its loader
                chain on a thread pool; extractions go to the sink.
``seal``        Seal the extraction sink; assemble the JS chunk.
``optimize``    Release only: optimize the JS chunk and every sealed kind.
``name``        Name each artifact from its final bytes.
``html``        Render the HTML shell referencing the named artifacts.
``write``       Stage every file, then publish them, the HTML shell last.
==============  ==========================================================

Any failure aborts the remaining stages. The exception raised carries the
failing stage in its ``stage`` attribute, and nothing is published unless
every stage before ``write`` succeeded.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

from assetline.bundle import BundleAssembler
from assetline.cache import LoaderCache
from assetline.config import (
    get_cache_dir,
    load_project_config,
    resolve_mode,
    resolve_pipeline_config,
)
from assetline.exceptions import AssetlineError, ConfigurationError
from assetline.graph import GraphModule, ModuleGraph
from assetline.html import HtmlEmitter
from assetline.loaders import BUILTIN_TRANSFORMS, LoaderChain, Transform
from assetline.models import (
    BuildResult,
    ExtractionEmission,
    ModuleResult,
    NamedArtifact,
    PipelineConfig,
    SourceFile,
)
from assetline.namer import ArtifactNamer
from assetline.optimizer import build_optimizer
from assetline.plugins import HookRunner, PluginManager
from assetline.sink import ExtractionSink
from assetline.writer import ArtifactWriter

logger = logging.getLogger(__name__)

StageCallback = Callable[[str], None]


def builtin_transforms() -> dict[str, Transform]:
    """Return fresh instances of every built-in transform, keyed by name."""
    return {name: cls() for name, cls in BUILTIN_TRANSFORMS.items()}


def should_scan(chain: LoaderChain, source: SourceFile) -> bool:
    """Return whether *source* is scanned for further imports.

    Only JS modules are scanned, and never those produced by a ``no_parse``
    or extracting rule.
    """
    if source.content_type != "js":
        return False
    rule = chain.match(source)
    return rule is None or not (rule.no_parse or rule.extract)


@contextmanager
def _stage(name: str, callback: Optional[StageCallback] = None) -> Iterator[None]:
    if callback is not None:
        callback(name)
    logger.debug("Stage %s", name)
    try:
        yield
    except AssetlineError as exc:
        if exc.stage is None:
            exc.stage = name
        raise


class Pipeline:
    """Runs one build for a resolved :class:`~assetline.models.PipelineConfig`.

    Transforms are injected, so tests and plugins can substitute the
    external compilers.

    Args:
        config: The frozen per-build configuration.
        transforms: Transform registry keyed by ``use`` name. Defaults to
            :func:`builtin_transforms`.
        hooks: Plugin hook runner; no plugins by default.
        cache: Optional loader cache.
        on_stage: Called with each stage name as it starts.
    """

    def __init__(
        self,
        config: PipelineConfig,
        transforms: Optional[dict[str, Transform]] = None,
        hooks: Optional[HookRunner] = None,
        cache: Optional[LoaderCache] = None,
        on_stage: Optional[StageCallback] = None,
    ) -> None:
        self.config = config
        self.transforms = transforms if transforms is not None else builtin_transforms()
        self.hooks = hooks or HookRunner([])
        self.cache = cache
        self.namer = ArtifactNamer(
            fingerprint_length=config.fingerprint_length,
            directories={"js": config.js_dir, "css": config.css_dir},
            fingerprint=config.fingerprint,
        )
        self.optimizer = build_optimizer(config)
        self.emitter = HtmlEmitter(config.html_filename)
        self.writer = ArtifactWriter(config.output_root)
        self._on_stage = on_stage

    def build(self) -> BuildResult:
        """Run every stage and return a summary of the published output.

        Raises:
            AssetlineError: The first failure, with ``stage`` set.
        """
        try:
            return self._run()
        except AssetlineError as exc:
            self.hooks.run_error(exc)
            raise

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #

    def _run(self) -> BuildResult:
        config = self.config
        started = time.monotonic()

        with _stage("configure", self._on_stage):
            chain = LoaderChain(
                config.rules,
                self.transforms,
                config.source_root,
                mode=config.mode,
                debug=config.debug,
                timeout=config.loader_timeout,
                extract=config.extract,
                cache=self.cache,
            )
            if not config.entry.is_file():
                raise ConfigurationError(f"Entry file not found: {config.entry}")
            self.emitter.load_template(config.template, config.html.inject)
            self.hooks.run_build_start(config)

        sink = ExtractionSink()
        with _stage("load", self._on_stage):
            graph = ModuleGraph(config.entry, should_scan=lambda s: should_scan(chain, s))
            modules = graph.walk()
            loaded = self._load(chain, graph, modules, sink)
            logger.debug("Loaded %d module(s)", len(loaded))

        with _stage("seal", self._on_stage):
            extracted = sink.seal_all(config.chunk_name)
            js = BundleAssembler(config.source_root).assemble(loaded)

        with _stage("optimize", self._on_stage):
            js = self.optimizer.optimize("js", js)
            extracted = {kind: self.optimizer.optimize(kind, text) for kind, text in extracted.items()}

        with _stage("name", self._on_stage):
            artifacts: list[NamedArtifact] = [
                self.namer.artifact(config.chunk_name, "js", js.encode("utf-8"), config.mode)
            ]
            for kind in sorted(extracted):
                artifacts.append(
                    self.namer.artifact(
                        config.chunk_name, kind, extracted[kind].encode("utf-8"), config.mode
                    )
                )

        with _stage("html", self._on_stage):
            document = self.emitter.emit(
                config.template,
                artifacts,
                injection_point=config.html.inject,
                loading_attribute=config.html.script_attribute,
            )

        with _stage("write", self._on_stage):
            published = self.writer.write(artifacts, document)

        result = BuildResult(
            mode=config.mode,
            output_root=str(config.output_root),
            artifacts=artifacts,
            html=str(published[-1]),
            modules=len(modules),
            duration_seconds=round(time.monotonic() - started, 3),
        )
        self.hooks.run_build_complete(result)
        return result

    def _load(
        self,
        chain: LoaderChain,
        graph: ModuleGraph,
        modules: list[GraphModule],
        sink: ExtractionSink,
    ) -> list[tuple[GraphModule, ModuleResult]]:
        """Run every module through its chain; results come back in graph order."""

        def _load_one(module: GraphModule) -> ModuleResult:
            result = chain.apply(module.source, graph.text_of(module))
            if isinstance(result, ExtractionEmission):
                sink.emit(
                    result.kind,
                    result.text,
                    position=module.position,
                    chunk=self.config.chunk_name,
                )
            return result

        if self.config.workers <= 1 or len(modules) <= 1:
            return [(module, _load_one(module)) for module in modules]

        with ThreadPoolExecutor(
            max_workers=self.config.workers, thread_name_prefix="assetline-loader"
        ) as pool:
            futures = [pool.submit(_load_one, module) for module in modules]
            try:
                return [(module, future.result()) for module, future in zip(modules, futures)]
            except BaseException:
                for future in futures:
                    future.cancel()
                raise


def build(
    source_root: str | Path,
    output_root: Optional[str | Path] = None,
    mode_signal: Optional[str] = None,
    config_path: Optional[str] = None,
    use_cache: bool = True,
    workers: Optional[int] = None,
    plugin_manager: Optional[PluginManager] = None,
    transforms: Optional[dict[str, Transform]] = None,
    on_stage: Optional[StageCallback] = None,
) -> BuildResult:
    """Build the project at *source_root*.

    Args:
        source_root: Project directory.
        output_root: Output directory; defaults to the project's
            ``output.path`` (``build``).
        mode_signal: Raw mode string. ``None`` consults ``ASSETLINE_MODE``;
            unknown values build in development mode.
        config_path: Explicit project config file.
        use_cache: Allow the loader cache when the project enables it.
        workers: Override the number of loader threads.
        plugin_manager: Pre-loaded plugins. When ``None``, plugins are
            discovered from entry points and cleaned up afterwards.
        transforms: Extra transforms registered alongside the built-in
            and plugin ones, replacing any with the same name.
        on_stage: Called with each stage name as it starts.

    Returns:
        A :class:`~assetline.models.BuildResult` describing the output.

    Raises:
        AssetlineError: On any failure; ``stage`` names the failing stage.
    """
    root = Path(source_root)
    mode = resolve_mode(mode_signal)
    logger.debug("Building %s in %s mode", root, mode.value)

    with _stage("configure"):
        project = load_project_config(root, config_path)
        if workers is not None:
            project = project.model_copy(update={"workers": max(1, workers)})
        config = resolve_pipeline_config(
            project, mode, root, Path(output_root) if output_root is not None else None
        )

        owns_plugins = plugin_manager is None
        manager = plugin_manager or PluginManager()
        if owns_plugins:
            manager.discover(project)
        hooks = manager.get_hook_runner()
        try:
            registry = hooks.collect_transforms(builtin_transforms())
        except AssetlineError:
            if owns_plugins:
                manager.cleanup()
            raise
        if transforms:
            registry.update(transforms)

    cache = (
        LoaderCache(get_cache_dir(), project.cache)
        if use_cache and project.cache.enabled
        else None
    )
    try:
        return Pipeline(
            config, transforms=registry, hooks=hooks, cache=cache, on_stage=on_stage
        ).build()
    finally:
        if cache is not None:
            cache.close()
        if owns_plugins:
            manager.cleanup()
