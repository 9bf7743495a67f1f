"""Shared test fixtures for assetline.

Provides a sample project on disk, fake stand-ins for the external
compilers (so no test needs ``elm`` or ``postcss`` installed), isolated
XDG/environment state, and output-manager resets. These fixtures are
automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from assetline.exceptions import CompileError
from assetline.loaders.base import LoaderContext, Transform
from assetline.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Fake transforms
# ---------------------------------------------------------------------------


class FakeElmTransform(Transform):
    """Stands in for ``elm make``.

    Emits an IIFE shaped like real compiler output, assigning ``Elm`` onto
    ``this``. The output embeds the source text and the ``debug`` flag, so
    it changes whenever either does. Sources containing ``COMPILE ERROR``
    fail like a type error would.
    """

    name = "elm"

    def __init__(self) -> None:
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def transform(self, text: str, ctx: LoaderContext) -> str:
        with self._lock:
            self.calls.append(ctx.relative_path)
        if "COMPILE ERROR" in text:
            raise CompileError(ctx.relative_path, "TYPE MISMATCH")
        module = ctx.source.path.stem
        debug = "true" if ctx.options.get("debug") else "false"
        return (
            "(function(scope){\n"
            f"  var debug = {debug};\n"
            f"  var source = {json.dumps(text)};\n"
            f"  scope['Elm'] = {{ {module}: {{ init: function () {{ return source; }} }} }};\n"
            "}(this));\n"
        )


class FakePostCssTransform(Transform):
    """Stands in for PostCSS: expands the ``$brand`` variable."""

    name = "postcss"

    def transform(self, text: str, ctx: LoaderContext) -> str:
        return text.replace("$brand", "#3366ff")


@pytest.fixture
def fake_transforms() -> dict[str, Transform]:
    """Built-in transforms with ``elm`` and ``postcss`` replaced by fakes."""
    from assetline.pipeline import builtin_transforms

    registry = builtin_transforms()
    registry["elm"] = FakeElmTransform()
    registry["postcss"] = FakePostCssTransform()
    return registry


# ---------------------------------------------------------------------------
# Sample project
# ---------------------------------------------------------------------------


INDEX_HTML = """\
<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>Sample</title>
  </head>
  <body>
    <div id="root"></div>
    <div id="widget"></div>
  </body>
</html>
"""

INDEX_JS = """\
import "./styles/main.css";
import { Elm } from "../elm/Main.elm";
import { Elm as WidgetElm } from "../elm/Widget.elm";

Elm.Main.init({ node: document.getElementById("root") });
WidgetElm.Widget.init({ node: document.getElementById("widget") });
"""

MAIN_CSS = """\
@import "./base.css";

/* brand colour */
body {
  color: $brand;
  font-family: "Helvetica Neue", sans-serif;
}
"""

BASE_CSS = """\
html {
  margin: 0;
  border-color: $brand;
}
"""

MAIN_ELM = """\
module Main exposing (main)

import Html exposing (text)

main =
    text "Hello"
"""

WIDGET_ELM = """\
module Widget exposing (main)

import Html exposing (text)

main =
    text "Widget"
"""


def write_project(root: Path) -> Path:
    """Write the sample project under *root* and return *root*."""
    files = {
        "elm.json": json.dumps({"type": "application", "source-directories": ["src/elm"]}),
        "src/static/index.html": INDEX_HTML,
        "src/static/index.js": INDEX_JS,
        "src/static/styles/main.css": MAIN_CSS,
        "src/static/styles/base.css": BASE_CSS,
        "src/elm/Main.elm": MAIN_ELM,
        "src/elm/Widget.elm": WIDGET_ELM,
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def sample_project(tmp_path: Path) -> Path:
    """An entry importing two Elm modules and one stylesheet (which imports another)."""
    return write_project(tmp_path / "webapp")


# ---------------------------------------------------------------------------
# Environment isolation
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate XDG directories and clear ``ASSETLINE_*`` variables.

    Returns:
        The tmp_path root directory.
    """
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setattr("assetline.config._is_xdg_platform", lambda: True)
    for var in ("ASSETLINE_MODE", "ASSETLINE_CONFIG"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager as the global output."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
