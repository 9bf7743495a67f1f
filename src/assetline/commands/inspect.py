"""Inspect commands -- examine how a project would be built.

Provides the ``assetline inspect`` sub-command group with read-only
commands: the fully resolved per-build configuration, the loader rule
table, and the module graph discovered from the entry file with the rule
each module matches. Nothing is compiled or written.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from assetline.exceptions import AssetlineError
from assetline.models import PipelineConfig
from assetline.output import error, format_response, get_output


inspect_app = typer.Typer(no_args_is_help=True)


def _resolve(
    source_root: Path, config_path: Optional[str], mode: Optional[str]
) -> PipelineConfig:
    """Load the project config and resolve it for *mode*.

    Raises:
        typer.Exit: With the error's exit code when the project cannot be
            configured.
    """
    from assetline.config import load_project_config, resolve_mode, resolve_pipeline_config

    try:
        project = load_project_config(source_root, config_path)
        return resolve_pipeline_config(project, resolve_mode(mode), source_root)
    except AssetlineError as exc:
        error(f"Config error: {exc}")
        raise typer.Exit(code=exc.exit_code) from None


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


@inspect_app.command("config")
def inspect_config(
    source_root: Path = typer.Argument(Path("."), help="Project directory."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Project config file."),
    mode: Optional[str] = typer.Option(None, "--mode", "-m", help="Build mode to resolve for."),
) -> None:
    """Show the resolved build configuration.

    Example::

        assetline inspect config --mode release --json
    """
    resolved = _resolve(source_root, config, mode)
    format_response(resolved.model_dump(mode="json"))


@inspect_app.command("rules")
def inspect_rules(
    source_root: Path = typer.Argument(Path("."), help="Project directory."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Project config file."),
) -> None:
    """List the loader rules in dispatch order."""
    resolved = _resolve(source_root, config, None)
    rows = [
        [
            str(index),
            rule.test,
            ", ".join(rule.exclude) or "-",
            " -> ".join(rule.use),
            rule.extract or "-",
            "yes" if rule.no_parse else "",
        ]
        for index, rule in enumerate(resolved.rules, start=1)
    ]
    get_output().print_table(
        ["#", "Test", "Exclude", "Use", "Extract", "No parse"],
        rows,
        title=f"Loader rules ({len(rows)})",
    )


@inspect_app.command("graph")
def inspect_graph(
    source_root: Path = typer.Argument(Path("."), help="Project directory."),
    config: Optional[str] = typer.Option(None, "--config", "-c", help="Project config file."),
) -> None:
    """List the modules reachable from the entry and the rule each matches.

    Example::

        assetline inspect graph --plain
    """
    from assetline.graph import ModuleGraph
    from assetline.loaders import LoaderChain
    from assetline.pipeline import builtin_transforms, should_scan

    resolved = _resolve(source_root, config, None)
    try:
        chain = LoaderChain(resolved.rules, builtin_transforms(), resolved.source_root)

        modules = ModuleGraph(
            resolved.entry, should_scan=lambda source: should_scan(chain, source)
        ).walk()
    except AssetlineError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    rows: list[list[str]] = []
    for module in modules:
        rule = chain.match(module.source)
        if rule is None:
            handling = "bundle (passthrough)"
        elif rule.extract and resolved.extract:
            handling = f"extract:{rule.extract}"
        elif rule.extract:
            handling = "bundle (style injection)"
        else:
            handling = "bundle"
        rows.append([
            str(module.position),
            _relative(module.source.path, resolved.source_root),
            module.source.content_type,
            " -> ".join(rule.use) if rule else "-",
            handling,
        ])

    get_output().print_table(
        ["Position", "Module", "Type", "Chain", "Result"],
        rows,
        title=f"Module graph ({len(rows)})",
    )
