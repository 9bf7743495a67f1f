"""Built-in transforms: Elm compilation, PostCSS, CSS ``@import`` inlining.

==============  ==========================================================
Name            Behaviour
==============  ==========================================================
``raw``         Identity.
``command``     Pipes text through ``options["command"]``.
``postcss``     Pipes text through ``options["postcss_command"]``
                (default ``["postcss"]``).
``elm``         Compiles the file with ``elm make``. ``debug`` adds
                ``--debug``; release builds add ``--optimize``.
``css``         Inlines relative ``@import`` rules.
==============  ==========================================================

The Elm compiler writes an IIFE that assigns ``Elm`` onto ``this``. The JS
bundle calls every module function with ``this`` bound to the module's
exports, so ``import { Elm } from "./Main.elm"`` needs no extra shim.
"""

from __future__ import annotations

import json
import logging
import re
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

from assetline.exceptions import CompileError, LoaderTimeoutError
from assetline.loaders.base import LoaderContext, Transform, run_external
from assetline.models import BuildMode, SourceFile

logger = logging.getLogger(__name__)


class RawTransform(Transform):
    """Pass text through unchanged."""

    name = "raw"

    def transform(self, text: str, ctx: LoaderContext) -> str:
        return text


class CommandTransform(Transform):
    """Pipe text through an external command configured per rule."""

    name = "command"
    option_key = "command"
    default_command: Optional[list[str]] = None

    def _command(self, ctx: LoaderContext) -> list[str]:
        command = ctx.options.get(self.option_key, self.default_command)
        if not command:
            raise CompileError(
                ctx.relative_path, f"'{self.name}' transform needs a '{self.option_key}' option"
            )
        if isinstance(command, str):
            command = command.split()
        return list(command)

    def transform(self, text: str, ctx: LoaderContext) -> str:
        return run_external(
            self._command(ctx),
            text,
            timeout=ctx.timeout,
            file_path=ctx.relative_path,
            cwd=ctx.source_root,
        )


class PostCssTransform(CommandTransform):
    """Run PostCSS over a stylesheet (stdin to stdout)."""

    name = "postcss"
    option_key = "postcss_command"
    default_command = ["postcss"]


class ElmTransform(Transform):
    """Compile an Elm module with ``elm make``.

    The compiler reads the project from disk, so the incoming text is not
    used; the file is compiled from its path, inside the nearest directory
    holding an ``elm.json``.

    Options:
        elm_command: Compiler executable (default ``"elm"``).
        debug: Add ``--debug`` (only honoured outside release builds).
        verbose: Log the compiler's stdout at info level.
        warn: Log anything the compiler wrote to stderr as a warning.
    """

    name = "elm"

    def transform(self, text: str, ctx: LoaderContext) -> str:
        project_dir = _find_elm_project(ctx.source.path, ctx.source_root)
        if project_dir is None:
            raise CompileError(ctx.relative_path, "no elm.json found above this file")

        for dep in _elm_sources(project_dir):
            ctx.add_dependency(dep)

        executable = ctx.options.get("elm_command", "elm")
        with tempfile.TemporaryDirectory(prefix="assetline-elm-") as tmp:
            out_file = Path(tmp) / "elm.js"
            command = [executable, "make", str(ctx.source.path), f"--output={out_file}"]
            if ctx.mode == BuildMode.RELEASE:
                command.append("--optimize")
            elif ctx.options.get("debug"):
                command.append("--debug")

            stdout = _run_elm(command, ctx, project_dir)
            if ctx.options.get("verbose") and stdout.strip():
                logger.info("elm make %s:\n%s", ctx.relative_path, stdout.strip())

            try:
                return out_file.read_text(encoding="utf-8")
            except OSError as exc:
                raise CompileError(ctx.relative_path, f"elm produced no output: {exc}") from exc


def _run_elm(command: list[str], ctx: LoaderContext, cwd: Path) -> str:
    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=ctx.timeout,
            cwd=str(cwd),
            stdin=subprocess.DEVNULL,
        )
    except subprocess.TimeoutExpired:
        raise LoaderTimeoutError(
            ctx.relative_path, f"elm make timed out after {ctx.timeout:g}s"
        ) from None
    except FileNotFoundError:
        raise CompileError(ctx.relative_path, f"command not found: {command[0]}") from None

    if result.returncode != 0:
        raise CompileError(ctx.relative_path, (result.stderr or result.stdout).strip())
    if ctx.options.get("warn") and result.stderr.strip():
        logger.warning("elm make %s: %s", ctx.relative_path, result.stderr.strip())
    return result.stdout


def _find_elm_project(path: Path, root: Path) -> Optional[Path]:
    """Walk up from *path* to *root* looking for ``elm.json``."""
    for directory in path.parents:
        if (directory / "elm.json").is_file():
            return directory
        if directory == root or root not in directory.parents:
            break
    return None


def _elm_sources(project_dir: Path) -> list[Path]:
    """Return every ``.elm`` file under the project's source directories."""
    try:
        manifest = json.loads((project_dir / "elm.json").read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return []
    files: list[Path] = []
    for src in manifest.get("source-directories", ["src"]):
        files.extend(sorted((project_dir / src).rglob("*.elm")))
    return files


_IMPORT_RE = re.compile(
    r"""@import\s+(?:url\(\s*)?(["'])(?P<target>[^"']+)\1\s*\)?\s*(?P<media>[^;]*);""",
)
_REMOTE_PREFIXES = ("http://", "https://", "//", "/", "~", "data:")


class CssTransform(Transform):
    """Inline relative ``@import`` rules, recursively.

    Every file is inlined at most once per stylesheet, which also breaks
    import cycles. Imports carrying a media query are wrapped in an
    ``@media`` block. Remote, absolute and package (``~pkg``) imports are
    left in place.

    Options:
        import_loaders: How many of the transforms that ran before this one
            are also applied to each imported file (default ``1``).
    """

    name = "css"

    def transform(self, text: str, ctx: LoaderContext) -> str:
        count = int(ctx.options.get("import_loaders", 1))
        stages = ctx.preceding[max(0, len(ctx.preceding) - count):] if count > 0 else ()
        return self._inline(text, ctx, stages, {ctx.source.path})

    def _inline(
        self,
        text: str,
        ctx: LoaderContext,
        stages: tuple[Transform, ...],
        seen: set[Path],
    ) -> str:
        def _replace(match: re.Match[str]) -> str:
            target = match.group("target")
            if target.startswith(_REMOTE_PREFIXES):
                return match.group(0)
            path = (ctx.source.path.parent / target).resolve()
            if path in seen:
                return ""
            seen.add(path)
            try:
                imported = path.read_text(encoding="utf-8")
            except OSError:
                raise CompileError(
                    ctx.relative_path, f"cannot resolve @import '{target}'"
                ) from None
            ctx.add_dependency(path)

            child = ctx.for_file(SourceFile.from_path(path), ())
            for i, stage in enumerate(stages):
                child.preceding = stages[:i]
                imported = stage.transform(imported, child)
            body = self._inline(imported, child, stages, seen)

            media = match.group("media").strip()
            if media:
                return f"@media {media} {{\n{body}\n}}"
            return body

        return _IMPORT_RE.sub(_replace, text)


BUILTIN_TRANSFORMS: dict[str, type[Transform]] = {
    cls.name: cls
    for cls in (RawTransform, CommandTransform, PostCssTransform, ElmTransform, CssTransform)
}
"""Built-in transform classes keyed by their ``use`` name."""
