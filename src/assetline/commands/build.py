"""Build command -- turn a project into a deployable static bundle.

``assetline build`` runs :func:`assetline.pipeline.build` for a source root
and reports the published artifacts. The build mode comes from
``--mode``/``--release`` or, when neither is given, from ``ASSETLINE_MODE``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from assetline.exceptions import AssetlineError
from assetline.output import error, format_response, get_output, progress, success, suggest


def build_command(
    source_root: Path = typer.Argument(
        Path("."), help="Project directory containing the entry and template."
    ),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Output directory (default: build/ in the project)."
    ),
    mode: Optional[str] = typer.Option(
        None, "--mode", "-m", help="Build mode: development or release."
    ),
    release: bool = typer.Option(
        False, "--release", help="Shorthand for --mode release."
    ),
    config: Optional[str] = typer.Option(
        None, "--config", "-c", help="Project config file (assetline.json/.yaml)."
    ),
    no_cache: bool = typer.Option(
        False, "--no-cache", help="Ignore the loader cache for this build."
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", min=1, help="Parallel loader threads."
    ),
) -> None:
    """Build the project at SOURCE_ROOT.

    Development builds write stable file names; release builds minify
    stylesheets and embed a content fingerprint in every file name.

    Example::

        assetline build
        assetline build ./webapp --release -o dist
        ASSETLINE_MODE=production assetline build --json
    """
    from assetline.pipeline import build

    if release and mode is not None:
        error("--release and --mode are mutually exclusive")
        raise typer.Exit(code=2)
    mode_signal = "release" if release else mode

    try:
        result = build(
            source_root,
            output_root=output,
            mode_signal=mode_signal,
            config_path=config,
            use_cache=not no_cache,
            workers=workers,
            on_stage=lambda stage: progress(f"{stage}..."),
        )
    except AssetlineError as exc:
        stage = f" during {exc.stage}" if exc.stage else ""
        error(f"Build failed{stage}: {exc}")
        if exc.stage == "configure":
            suggest("Run: assetline inspect config")
        raise typer.Exit(code=exc.exit_code) from None

    output_manager = get_output()
    if output_manager.format.value == "json":
        format_response(result.model_dump(mode="json"))
        return

    output_manager.print_table(
        ["File", "Kind", "Size"],
        [[a.filename, a.kind, f"{a.size:,} B"] for a in result.artifacts],
        title=f"{result.mode.value} build",
    )
    success(
        f"Built {result.modules} module(s) in {result.mode.value} mode "
        f"({result.duration_seconds:.2f}s) -> {result.output_root}"
    )
