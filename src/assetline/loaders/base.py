"""Transform interface, loader context, and the external-process helper.

A *transform* is one stage of a loader chain: it receives the previous
stage's text (raw source text for the first stage) and returns new text,
or raises :class:`~assetline.exceptions.CompileError`. External tools such
as the Elm compiler or PostCSS are wrapped as transforms via
:func:`run_external`, which bounds every invocation by a timeout so one bad
file cannot hang a build.
"""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

from assetline.exceptions import CompileError, LoaderTimeoutError
from assetline.models import BuildMode, SourceFile

logger = logging.getLogger(__name__)


@dataclass
class LoaderContext:
    """Per-file state handed to every transform in a chain.

    Attributes:
        source: The file being loaded.
        source_root: Project root; relative paths in messages use it.
        options: Rule options merged with mode-derived flags.
        mode: The build mode.
        timeout: Seconds allowed for each external invocation.
        preceding: Transforms that ran before the current one in this
            chain, in order. Used by transforms that load further files
            (``@import``) and must run them through the same stages.
        dependencies: Extra files whose content affected the result.
            The loader cache re-validates them before reusing a result.
    """

    source: SourceFile
    source_root: Path
    options: dict[str, Any] = field(default_factory=dict)
    mode: BuildMode = BuildMode.DEVELOPMENT
    timeout: float = 120.0
    preceding: tuple[Transform, ...] = ()
    dependencies: list[Path] = field(default_factory=list)

    @property
    def relative_path(self) -> str:
        """The source path relative to the project root, with forward slashes."""
        try:
            return self.source.path.relative_to(self.source_root).as_posix()
        except ValueError:
            return self.source.path.as_posix()

    def add_dependency(self, path: Path) -> None:
        if path not in self.dependencies:
            self.dependencies.append(path)

    def for_file(self, source: SourceFile, preceding: tuple[Transform, ...]) -> LoaderContext:
        """Return a child context for another file sharing this context's dependency list."""
        return replace(self, source=source, preceding=preceding)


class Transform(ABC):
    """One stage of a loader chain.

    Subclasses set :attr:`name` (the identifier used in ``use`` lists) and
    implement :meth:`transform`.
    """

    name: str = ""

    @abstractmethod
    def transform(self, text: str, ctx: LoaderContext) -> str:
        """Transform *text* for the file described by *ctx*.

        Raises:
            CompileError: If the input cannot be transformed.
        """


def run_external(
    command: list[str],
    input_text: str,
    timeout: float,
    file_path: str,
    cwd: Optional[Path] = None,
) -> str:
    """Run *command* with *input_text* on stdin and return its stdout.

    Args:
        command: Program and arguments.
        input_text: Text piped to the process.
        timeout: Seconds before the process is killed.
        file_path: Source path reported in errors.
        cwd: Working directory for the process.

    Raises:
        LoaderTimeoutError: If the process exceeds *timeout*.
        CompileError: If the program is missing or exits non-zero.
    """
    logger.debug("Running %s for %s", " ".join(command), file_path)
    try:
        result = subprocess.run(
            command,
            input=input_text,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=str(cwd) if cwd is not None else None,
        )
    except subprocess.TimeoutExpired:
        raise LoaderTimeoutError(
            file_path, f"'{command[0]}' timed out after {timeout:g}s"
        ) from None
    except FileNotFoundError:
        raise CompileError(file_path, f"command not found: {command[0]}") from None

    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        lines = detail.splitlines()[-20:]
        raise CompileError(
            file_path,
            f"'{command[0]}' exited with status {result.returncode}"
            + ("\n" + "\n".join(lines) if lines else ""),
        )
    return result.stdout
