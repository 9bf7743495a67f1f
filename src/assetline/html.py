"""HTML shell generation.

The emitter reads the project's HTML template and injects one
``<link rel="stylesheet">`` tag per CSS artifact followed by one
``<script>`` tag per JS artifact, immediately before the closing tag of
the configured injection point (``</head>`` or ``</body>``). Everything
else in the template is preserved byte for byte.

Tags are rendered from ``templates/tags.html.j2`` with Jinja2 autoescaping,
so artifact paths can never break out of their attribute.
"""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path
from typing import Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from assetline.exceptions import BuildIOError, ConfigurationError, TemplateError
from assetline.models import HtmlDocument, NamedArtifact

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).parent / "templates"
"""Path to the Jinja2 template directory (``assetline/templates/``)."""

_CLOSING_TAGS = {
    "head": re.compile(r"</head\s*>", re.IGNORECASE),
    "body": re.compile(r"</body\s*>", re.IGNORECASE),
}


def _create_jinja_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=select_autoescape(enabled_extensions=("html", "html.j2")),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def _find_closing_tag(text: str, template: Path, injection_point: str) -> re.Match[str]:
    pattern = _CLOSING_TAGS.get(injection_point)
    if pattern is None:
        raise ConfigurationError(
            f"Unknown injection point '{injection_point}' (expected 'head' or 'body')"
        )
    match = pattern.search(text)
    if match is None:
        raise TemplateError(
            f"HTML template {template} has no </{injection_point}> tag to inject into"
        )
    return match


class HtmlEmitter:
    """Render the HTML shell that references the final named artifacts.

    Args:
        filename: Output file name of the document, relative to the
            output root. Artifact references are made relative to its
            directory.
    """

    def __init__(self, filename: str = "index.html") -> None:
        self._filename = filename
        self._env = _create_jinja_env()

    def emit(
        self,
        template: Path,
        named_artifacts: Sequence[NamedArtifact],
        injection_point: str = "head",
        loading_attribute: Optional[str] = "defer",
    ) -> HtmlDocument:
        """Inject artifact references into *template*.

        Args:
            template: Path of the HTML template.
            named_artifacts: Artifacts to reference. ``css`` artifacts become
                stylesheet links, ``js`` artifacts become scripts; other
                kinds are not referenced.
            injection_point: ``"head"`` or ``"body"``.
            loading_attribute: ``"defer"``, ``"async"``, ``"module"`` or
                ``None``; applied to script tags only.

        Returns:
            The rendered :class:`~assetline.models.HtmlDocument`.

        Raises:
            ConfigurationError: If the template file does not exist.
            TemplateError: If the template has no closing tag for the
                injection point.
            BuildIOError: If the template exists but cannot be read.
        """
        text = self.load_template(template, injection_point)
        match = _find_closing_tag(text, template, injection_point)

        stylesheets = [self._href(a) for a in named_artifacts if a.kind == "css"]
        scripts = [self._href(a) for a in named_artifacts if a.kind == "js"]

        # Closing tag on its own line: one indented tag per line above it.
        line_start = text.rfind("\n", 0, match.start()) + 1
        indent = text[line_start:match.start()]
        if indent.strip():
            tags = self._render(stylesheets, scripts, loading_attribute, "").replace("\n", "")
            insert_at = match.start()
        else:
            tags = self._render(stylesheets, scripts, loading_attribute, indent + "  ")
            insert_at = line_start

        content = text[:insert_at] + tags + text[insert_at:]
        logger.debug(
            "Injected %d stylesheet(s) and %d script(s) before </%s>",
            len(stylesheets),
            len(scripts),
            injection_point,
        )
        return HtmlDocument(
            filename=self._filename,
            content=content,
            references=stylesheets + scripts,
        )

    def load_template(self, template: Path, injection_point: str = "head") -> str:
        """Read *template* and check that it has the injection point's closing tag.

        Raises:
            ConfigurationError: If the template file does not exist.
            TemplateError: If the closing tag is missing.
            BuildIOError: If the template cannot be read.
        """
        if not template.is_file():
            raise ConfigurationError(f"HTML template not found: {template}")
        try:
            text = template.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise BuildIOError(str(template), "read", str(exc)) from exc
        _find_closing_tag(text, template, injection_point)
        return text

    def _href(self, artifact: NamedArtifact) -> str:
        base = posixpath.dirname(self._filename)
        if not base:
            return artifact.filename
        return posixpath.relpath(artifact.filename, base)

    def _render(
        self,
        stylesheets: list[str],
        scripts: list[str],
        attribute: Optional[str],
        indent: str,
    ) -> str:
        template = self._env.get_template("tags.html.j2")
        return template.render(
            stylesheets=stylesheets,
            scripts=scripts,
            attribute=attribute,
            indent=indent,
        )
