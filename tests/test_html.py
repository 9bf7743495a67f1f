"""Tests for assetline.html — artifact reference injection into the HTML shell."""

from __future__ import annotations

from pathlib import Path

import pytest

from assetline.exceptions import ConfigurationError, TemplateError
from assetline.html import HtmlEmitter
from assetline.models import NamedArtifact

PAGE = """\
<!DOCTYPE html>
<html>
  <head>
    <title>App</title>
  </head>
  <body>
    <div id="root"></div>
  </body>
</html>
"""


def _artifacts(js: str = "static/js/main.js", css: str = "static/css/main.css") -> list[NamedArtifact]:
    return [
        NamedArtifact(logical_name="main", kind="js", filename=js, content=b"js"),
        NamedArtifact(logical_name="main", kind="css", filename=css, content=b"css"),
    ]


@pytest.fixture()
def template(tmp_path: Path) -> Path:
    path = tmp_path / "index.html"
    path.write_text(PAGE, encoding="utf-8")
    return path


class TestEmit:
    def test_injects_before_head(self, template: Path) -> None:
        doc = HtmlEmitter().emit(template, _artifacts())
        assert doc.content == PAGE.replace(
            "  </head>",
            '    <link rel="stylesheet" href="static/css/main.css">\n'
            '    <script defer src="static/js/main.js"></script>\n'
            "  </head>",
        )

    def test_stylesheets_precede_scripts(self, template: Path) -> None:
        doc = HtmlEmitter().emit(template, _artifacts())
        assert doc.references == ["static/css/main.css", "static/js/main.js"]
        assert doc.content.index("<link") < doc.content.index("<script")

    def test_injects_before_body(self, template: Path) -> None:
        doc = HtmlEmitter().emit(template, _artifacts(), injection_point="body")
        head, body = doc.content.split("<body>")
        assert "<script" not in head
        assert body.index("<script") < body.index("</body>")
        assert body.index('<div id="root">') < body.index("<link")

    def test_rest_of_template_preserved(self, template: Path) -> None:
        doc = HtmlEmitter().emit(template, _artifacts())
        stripped = "".join(
            line + "\n"
            for line in doc.content.splitlines()
            if "<link" not in line and "<script" not in line
        )
        assert stripped == PAGE

    def test_inline_closing_tag(self, tmp_path: Path) -> None:
        path = tmp_path / "min.html"
        path.write_text("<html><head><title>x</title></head><body></body></html>", encoding="utf-8")
        doc = HtmlEmitter().emit(path, _artifacts())
        assert doc.content == (
            "<html><head><title>x</title>"
            '<link rel="stylesheet" href="static/css/main.css">'
            '<script defer src="static/js/main.js"></script>'
            "</head><body></body></html>"
        )

    def test_uppercase_closing_tag(self, tmp_path: Path) -> None:
        path = tmp_path / "upper.html"
        path.write_text("<HTML><HEAD>\n</HEAD></HTML>\n", encoding="utf-8")
        doc = HtmlEmitter().emit(path, _artifacts())
        assert doc.content.index("<script") < doc.content.index("</HEAD>")

    @pytest.mark.parametrize(
        ("attribute", "expected"),
        [
            ("defer", '<script defer src="static/js/main.js">'),
            ("async", '<script async src="static/js/main.js">'),
            ("module", '<script type="module" src="static/js/main.js">'),
            (None, '<script src="static/js/main.js">'),
        ],
    )
    def test_loading_attribute(self, template: Path, attribute: str | None, expected: str) -> None:
        doc = HtmlEmitter().emit(template, _artifacts(), loading_attribute=attribute)
        assert expected in doc.content

    def test_fingerprinted_names_referenced(self, template: Path) -> None:
        artifacts = _artifacts(
            js="static/js/main.0123456789abcdef0123.js",
            css="static/css/main.fedcba9876543210fedc.css",
        )
        doc = HtmlEmitter().emit(template, artifacts)
        assert 'src="static/js/main.0123456789abcdef0123.js"' in doc.content
        assert 'href="static/css/main.fedcba9876543210fedc.css"' in doc.content

    def test_paths_are_escaped(self, template: Path) -> None:
        doc = HtmlEmitter().emit(template, _artifacts(js='static/js/a"><b.js'))
        assert 'a"><b.js' not in doc.content
        assert "a&#34;&gt;&lt;b.js" in doc.content

    def test_references_relative_to_html_directory(self, template: Path) -> None:
        doc = HtmlEmitter(filename="static/index.html").emit(template, _artifacts())
        assert doc.filename == "static/index.html"
        assert doc.references == ["css/main.css", "js/main.js"]

    def test_other_kinds_not_referenced(self, template: Path) -> None:
        artifacts = _artifacts() + [
            NamedArtifact(logical_name="main", kind="txt", filename="main.txt", content=b"")
        ]
        doc = HtmlEmitter().emit(template, artifacts)
        assert "main.txt" not in doc.content


class TestTemplateErrors:
    def test_missing_template(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            HtmlEmitter().emit(tmp_path / "missing.html", _artifacts())

    def test_missing_closing_tag(self, tmp_path: Path) -> None:
        path = tmp_path / "fragment.html"
        path.write_text("<div>no head here</div>\n", encoding="utf-8")
        with pytest.raises(TemplateError, match="</head>"):
            HtmlEmitter().emit(path, _artifacts())

    def test_unknown_injection_point(self, template: Path) -> None:
        with pytest.raises(ConfigurationError, match="footer"):
            HtmlEmitter().load_template(template, "footer")

    def test_load_template_returns_text(self, template: Path) -> None:
        assert HtmlEmitter().load_template(template, "body") == PAGE
