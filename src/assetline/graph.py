"""Module graph discovery from the entry file.

The graph walk is deliberately small: it follows *relative* import
specifiers only (``./`` and ``../``) in JavaScript modules, depth-first in
source order, and assigns each module its discovery index (its *graph
position*). Package imports (``import "react"``) are not resolved.

Recognised forms::

    import { Elm } from "./Main.elm";
    import "./styles/main.css";
    import * as util from "./util.js";
    export { x } from "./x.js";
    const y = require("./y.js");

Comments and string literals are skipped, so a commented-out import is
never followed. Regular-expression literals are not recognised.

Modules produced by a rule with ``no_parse`` (compiled Elm output) and
extracted modules are never scanned.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterator, Optional

from assetline.exceptions import BuildIOError, ConfigurationError
from assetline.models import SourceFile

STATEMENT_RE = re.compile(
    r"""
        (?P<skip>
            //[^\n]*
          | /\*[\s\S]*?(?:\*/|\Z)
          | "(?:\\.|[^"\\\n])*"
          | '(?:\\.|[^'\\\n])*'
          | `(?:\\.|[^`\\])*`
        )
      | \bimport\s+(?P<clause>[\w$*{}\s,]+?)\s+from\s+(?P<q1>["'])(?P<spec1>[^"']+)(?P=q1)\s*;?
      | \bimport\s+(?P<q2>["'])(?P<spec2>[^"']+)(?P=q2)\s*;?
      | \bexport\s+(?P<reexport>\*|\{[^}]*\})\s+from\s+(?P<q3>["'])(?P<spec3>[^"']+)(?P=q3)\s*;?
      | \brequire\(\s*(?P<q4>["'])(?P<spec4>[^"']+)(?P=q4)\s*\)
      | \bexport\s+(?P<default>default)\b\s*
        (?:(?P<default_kw>(?:async\s+)?function\b\s*\*?|class\b)\s*(?!extends\b)(?P<default_name>[A-Za-z_$][\w$]*))?
      | \bexport\s+(?P<decl_kw>(?:async\s+)?function\b\s*\*?|class\b|const\b|let\b|var\b)\s*(?P<decl_name>[A-Za-z_$][\w$]*)
      | \bexport\s*\{(?P<locals>[^}]*)\}\s*;?
    """,
    re.VERBOSE,
)
"""Module statements the graph walk and the bundle assembler act on.

Comments and string literals match the ``skip`` group and are left alone.
Every other alternative is an import, a re-export, a ``require`` call or a
local ``export`` declaration.
"""

_SCANNABLE_TYPES = frozenset({"js"})


def specifier_of(match: re.Match[str]) -> Optional[str]:
    """Return the module specifier captured by a :data:`STATEMENT_RE` match.

    ``None`` for comments, strings and local exports.
    """
    return (
        match.group("spec1")
        or match.group("spec2")
        or match.group("spec3")
        or match.group("spec4")
    )


def find_imports(text: str) -> list[str]:
    """Return the relative import specifiers in *text*, in source order."""
    specs: list[str] = []
    for match in STATEMENT_RE.finditer(text):
        spec = specifier_of(match)
        if spec and spec.startswith(("./", "../")) and spec not in specs:
            specs.append(spec)
    return specs


@dataclass
class GraphModule:
    """A module discovered during traversal.

    Attributes:
        source: The source file.
        position: Depth-first discovery index; the entry is ``0``.
        imports: Relative specifiers found in the module, in order.
        resolved: Mapping of each specifier to the absolute path it resolves to.
        scanned: Whether the module's text was scanned for imports.
    """

    source: SourceFile
    position: int
    imports: list[str] = field(default_factory=list)
    resolved: dict[str, Path] = field(default_factory=dict)
    scanned: bool = False


def resolve_specifier(importer: Path, spec: str) -> Path:
    """Resolve a relative specifier against the importing file's directory.

    A specifier without an extension also tries ``.js`` and ``/index.js``.

    Raises:
        BuildIOError: If no candidate file exists.
    """
    base = (importer.parent / spec).resolve()
    candidates = [base]
    if not base.suffix:
        candidates += [base.with_suffix(".js"), base / "index.js"]
    for candidate in candidates:
        if candidate.is_file():
            return candidate
    raise BuildIOError(str(base), "resolve", f"imported from {importer}")


def read_source(path: Path) -> str:
    """Read a source file as UTF-8.

    Raises:
        BuildIOError: If the file cannot be read.
    """
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise BuildIOError(str(path), "read", str(exc)) from exc


class ModuleGraph:
    """Depth-first module discovery starting at the entry file.

    Args:
        entry: Absolute path of the entry module.
        should_scan: Callback deciding whether a module's text is scanned
            for further imports; by default only ``js`` modules are.

    Example::

        graph = ModuleGraph(config.entry)
        for module in graph.walk():
            print(module.position, module.source.path)
    """

    def __init__(
        self,
        entry: Path,
        should_scan: Optional[Callable[[SourceFile], bool]] = None,
    ) -> None:
        self._entry = entry
        self._should_scan = should_scan or (lambda s: s.content_type in _SCANNABLE_TYPES)
        self.modules: list[GraphModule] = []
        self._texts: dict[Path, str] = {}

    def text_of(self, module: GraphModule) -> str:
        """Return the source text read for *module* during the walk."""
        return self._texts[module.source.path]

    def walk(self) -> list[GraphModule]:
        """Discover every module reachable from the entry.

        Returns:
            Modules ordered by graph position.

        Raises:
            ConfigurationError: If the entry file does not exist.
            BuildIOError: If an imported file is missing or unreadable.
        """
        if not self._entry.is_file():
            raise ConfigurationError(f"Entry file not found: {self._entry}")

        self.modules = []
        self._texts = {}
        index: dict[Path, GraphModule] = {}

        def _enter(path: Path) -> tuple[GraphModule, Iterator[str]]:
            source = SourceFile.from_path(path)
            module = GraphModule(source=source, position=len(self.modules))
            self.modules.append(module)
            index[source.path] = module
            text = read_source(source.path)
            self._texts[source.path] = text
            if self._should_scan(source):
                module.scanned = True
                module.imports = find_imports(text)
            return module, iter(module.imports)

        # Explicit stack; import chains can be deeper than the recursion limit.
        stack = [_enter(self._entry.resolve())]
        while stack:
            module, specs = stack[-1]
            spec = next(specs, None)
            if spec is None:
                stack.pop()
                continue
            target = resolve_specifier(module.source.path, spec)
            module.resolved[spec] = target
            if target not in index:
                stack.append(_enter(target))
        return self.modules
