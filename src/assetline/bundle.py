"""JS chunk assembly.

Every bundle contribution is wrapped in a function inside a small module
registry, keyed by its graph position. Relative import statements are
rewritten into registry lookups; imports of extracted modules (stylesheets)
are dropped, since their content lives in a separate artifact.

The output for an entry importing one Elm module and one stylesheet looks
like::

    (function (modules) {
      ...
      require(0);
    })({
    /* 0: src/static/index.js */
    0: function (module, exports, require, __default) {
    /* extracted: src/static/main.css */
    var __m1 = require(1), Elm = __m1.Elm;
    Elm.Main.init({ node: document.getElementById("root") });
    },
    ...
    });

Module functions are called with ``this`` bound to ``module.exports``.
Local ``export`` declarations become getters on ``exports`` defined at the
top of the module function, so importers see the binding's current value::

    export function greet() {}      ->  function greet() {}
    export const a = 1;             ->  const a = 1;
    export { a as b };              ->  (removed)
    export default class App {}     ->  class App {}
    export default 42;              ->  exports["default"] = 42;

Only the first name of a multi-name ``const``/``let``/``var`` declaration is
exported, and destructuring exports are not translated. Comments and
string literals are never rewritten.
"""

from __future__ import annotations

import json
import re
from pathlib import Path

from assetline.graph import STATEMENT_RE, GraphModule, specifier_of
from assetline.models import BundleContribution, ModuleResult

_RUNTIME_HEAD = """\
(function (modules) {
  var cache = {};
  function __default(m) {
    return m && Object.prototype.hasOwnProperty.call(m, "default") ? m["default"] : m;
  }
  function require(id) {
    if (cache[id]) {
      return cache[id].exports;
    }
    var module = (cache[id] = { exports: {} });
    modules[id].call(module.exports, module, module.exports, require, __default);
    return module.exports;
  }
"""

_NAMED_RE = re.compile(r"\{([^}]*)\}")
_NAMESPACE_RE = re.compile(r"\*\s+as\s+([\w$]+)")


def _named_pairs(body: str) -> list[tuple[str, str]]:
    """Parse ``a, b as c`` into ``[("a", "a"), ("b", "c")]``."""
    pairs: list[tuple[str, str]] = []
    for item in body.split(","):
        item = item.strip()
        if not item:
            continue
        if " as " in item:
            src, dst = (part.strip() for part in item.split(" as ", 1))
        else:
            src = dst = item
        pairs.append((src, dst))
    return pairs


def _import_bindings(clause: str, ref: str) -> list[str]:
    clause = clause.strip()
    bindings: list[str] = []
    if not clause.startswith(("{", "*")):
        bindings.append(f"{clause.split(',')[0].strip()} = __default({ref})")
    namespace = _NAMESPACE_RE.search(clause)
    if namespace:
        bindings.append(f"{namespace.group(1)} = {ref}")
    named = _NAMED_RE.search(clause)
    if named:
        bindings.extend(f"{dst} = {ref}.{src}" for src, dst in _named_pairs(named.group(1)))
    return bindings


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


class BundleAssembler:
    """Assemble one JS chunk from the loaded modules of a graph.

    Args:
        source_root: Project root, used for module comments.
    """

    def __init__(self, source_root: Path) -> None:
        self._root = source_root

    def assemble(self, loaded: list[tuple[GraphModule, ModuleResult]]) -> str:
        """Return the chunk text for *loaded*, ordered by graph position.

        Modules whose result is an extraction are omitted, and statements
        importing them are replaced by a comment.
        """
        ordered = sorted(loaded, key=lambda pair: pair[0].position)
        ids = {module.source.path: module.position for module, _ in ordered}
        extracted = {
            module.source.path
            for module, result in ordered
            if not isinstance(result, BundleContribution)
        }

        parts = [_RUNTIME_HEAD]
        if ordered and ordered[0][0].position == 0 and ordered[0][0].source.path not in extracted:
            parts.append("  require(0);\n")
        parts.append("})({\n")
        for module, result in ordered:
            if not isinstance(result, BundleContribution):
                continue
            body = self._rewrite(module, result.value, ids, extracted)
            if not body.endswith("\n"):
                body += "\n"
            parts.append(
                f"/* {module.position}: {_relative(module.source.path, self._root)} */\n"
                f"{module.position}: function (module, exports, require, __default) {{\n"
                f"{body}"
                "},\n"
            )
        parts.append("});\n")
        return "".join(parts)

    def _rewrite(
        self,
        module: GraphModule,
        text: str,
        ids: dict[Path, int],
        extracted: set[Path],
    ) -> str:
        if not module.scanned:
            return text

        exported: list[tuple[str, str]] = []

        def _replace(match: re.Match[str]) -> str:
            if match.group("skip") is not None:
                return match.group(0)
            if match.group("decl_kw") is not None:
                exported.append((match.group("decl_name"), match.group("decl_name")))
                return f"{match.group('decl_kw').rstrip()} {match.group('decl_name')}"
            if match.group("locals") is not None:
                exported.extend((dst, src) for src, dst in _named_pairs(match.group("locals")))
                return ""
            if match.group("default") is not None:
                if match.group("default_name") is not None:
                    exported.append(("default", match.group("default_name")))
                    return f"{match.group('default_kw').rstrip()} {match.group('default_name')}"
                return 'exports["default"] = '

            target = module.resolved.get(specifier_of(match))
            if target is None or target not in ids:
                return match.group(0)
            if target in extracted:
                return f"/* extracted: {_relative(target, self._root)} */"

            target_id = ids[target]
            if match.group("spec4"):
                return f"require({target_id})"
            if match.group("spec2"):
                return f"require({target_id});"

            ref = f"__m{target_id}"
            if match.group("spec3"):
                reexport = match.group("reexport")
                if reexport == "*":
                    return f"Object.assign(exports, require({target_id}));"
                assigns = "".join(
                    f" exports.{dst} = {ref}.{src};"
                    for src, dst in _named_pairs(reexport.strip("{} "))
                )
                return f"var {ref} = require({target_id});{assigns}"

            bindings = _import_bindings(match.group("clause"), ref)
            return f"var {ref} = require({target_id})" + "".join(
                f", {b}" for b in bindings
            ) + ";"

        body = STATEMENT_RE.sub(_replace, text)
        return "".join(_export_getter(name, local) for name, local in exported) + body


def _export_getter(name: str, local: str) -> str:
    """Expose *local* as ``exports[name]``, reading the binding on every access."""
    return (
        f"Object.defineProperty(exports, {json.dumps(name)}, "
        f"{{ enumerable: true, configurable: true, get: function () {{ return {local}; }} }});\n"
    )
