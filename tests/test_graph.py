"""Tests for assetline.graph — import scanning and module discovery."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from assetline.exceptions import BuildIOError, ConfigurationError
from assetline.graph import ModuleGraph, find_imports, resolve_specifier


def _write(root: Path, rel: str, content: str = "") -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestFindImports:
    def test_all_forms_in_source_order(self) -> None:
        text = """
            import "./styles/main.css";
            import { Elm } from '../elm/Main.elm';
            import * as util from "./util.js";
            import Default, { a as b } from "./mixed.js";
            export { x } from "./x.js";
            export * from "./all.js";
            const y = require("./y.js");
        """
        assert find_imports(text) == [
            "./styles/main.css",
            "../elm/Main.elm",
            "./util.js",
            "./mixed.js",
            "./x.js",
            "./all.js",
            "./y.js",
        ]

    def test_package_imports_ignored(self) -> None:
        assert find_imports('import React from "react";\nrequire("lodash");') == []

    def test_duplicates_collapsed(self) -> None:
        assert find_imports('import "./a.js";\nrequire("./a.js");') == ["./a.js"]

    def test_comments_ignored(self) -> None:
        text = (
            '// import "./old.js";\n'
            '/* require("./older.js");\n   import "./oldest.js"; */\n'
            'import "./current.js"; // was "./legacy.js"\n'
        )
        assert find_imports(text) == ["./current.js"]

    def test_string_literals_ignored(self) -> None:
        text = (
            'const doc = "import \'./a.js\'";\n'
            "const tpl = `require(\"./b.js\")`;\n"
            'const s = \'import "./c.js"\';\n'
            'import "./real.js";\n'
        )
        assert find_imports(text) == ["./real.js"]

    def test_local_exports_are_not_imports(self) -> None:
        text = "export function f() {}\nexport { f as g };\nexport default 1;\n"
        assert find_imports(text) == []


class TestResolveSpecifier:
    def test_exact_file(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "lib/a.css")
        assert resolve_specifier(tmp_path / "index.js", "./lib/a.css") == target.resolve()

    def test_js_extension_added(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "util.js")
        assert resolve_specifier(tmp_path / "index.js", "./util") == target.resolve()

    def test_directory_index(self, tmp_path: Path) -> None:
        target = _write(tmp_path, "lib/index.js")
        assert resolve_specifier(tmp_path / "index.js", "./lib") == target.resolve()

    def test_missing(self, tmp_path: Path) -> None:
        with pytest.raises(BuildIOError, match="imported from"):
            resolve_specifier(tmp_path / "index.js", "./nope.js")


class TestModuleGraph:
    def test_depth_first_positions(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", 'import "./a.js";\nimport "./style.css";\n')
        _write(tmp_path, "a.js", 'const b = require("./b");\nimport "./style.css";\n')
        _write(tmp_path, "b.js", "module.exports = 1;\n")
        _write(tmp_path, "style.css", "a{}")

        modules = ModuleGraph(entry).walk()
        names = [m.source.path.name for m in modules]
        assert names == ["index.js", "a.js", "b.js", "style.css"]
        assert [m.position for m in modules] == [0, 1, 2, 3]

    def test_each_module_visited_once(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", 'import "./a.js";\nimport "./b.js";\n')
        _write(tmp_path, "a.js", 'import "./b.js";\n')
        _write(tmp_path, "b.js", 'import "./a.js";\n')
        modules = ModuleGraph(entry).walk()
        assert [m.source.path.name for m in modules] == ["index.js", "a.js", "b.js"]

    def test_resolved_specifiers_recorded(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", 'import { x } from "./lib";\n')
        lib = _write(tmp_path, "lib/index.js", "export var x = 1;\n")
        root = ModuleGraph(entry).walk()[0]
        assert root.imports == ["./lib"]
        assert root.resolved == {"./lib": lib.resolve()}

    def test_non_js_modules_not_scanned(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", 'import "./main.css";\n')
        _write(tmp_path, "main.css", '/* import "./ghost.js"; */')
        modules = ModuleGraph(entry).walk()
        assert len(modules) == 2
        assert modules[1].imports == []

    def test_should_scan_callback(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", 'import "./vendor.js";\n')
        _write(tmp_path, "vendor.js", 'require("./missing.js");\n')
        graph = ModuleGraph(entry, should_scan=lambda s: s.path.name != "vendor.js")
        assert len(graph.walk()) == 2

    def test_text_of(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", "console.log(1);\n")
        graph = ModuleGraph(entry)
        (module,) = graph.walk()
        assert graph.text_of(module) == "console.log(1);\n"

    def test_missing_entry(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="Entry file not found"):
            ModuleGraph(tmp_path / "index.js").walk()

    def test_missing_import(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", 'import "./gone.js";\n')
        with pytest.raises(BuildIOError):
            ModuleGraph(entry).walk()

    def test_sample_project_positions(self, sample_project: Path) -> None:
        modules = ModuleGraph(sample_project / "src" / "static" / "index.js").walk()
        assert [m.source.path.name for m in modules] == [
            "index.js",
            "main.css",
            "Main.elm",
            "Widget.elm",
        ]

    def test_commented_import_not_followed(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", '// import "./old.js";\nimport "./a.js";\n')
        _write(tmp_path, "a.js", "")
        modules = ModuleGraph(entry).walk()
        assert [m.source.path.name for m in modules] == ["index.js", "a.js"]

    def test_scanned_flag(self, tmp_path: Path) -> None:
        entry = _write(tmp_path, "index.js", 'import "./main.css";\n')
        _write(tmp_path, "main.css", "a{}")
        modules = ModuleGraph(entry).walk()
        assert [m.scanned for m in modules] == [True, False]

    def test_deep_chain_beyond_recursion_limit(self, tmp_path: Path) -> None:
        depth = sys.getrecursionlimit() + 100
        for i in range(depth):
            _write(tmp_path, f"m{i}.js", f'import "./m{i + 1}.js";\n')
        _write(tmp_path, f"m{depth}.js", "")
        modules = ModuleGraph(tmp_path / "m0.js").walk()
        assert len(modules) == depth + 1
        assert modules[-1].source.path.name == f"m{depth}.js"
        assert modules[-1].position == depth
