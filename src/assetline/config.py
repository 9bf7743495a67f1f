"""Configuration management: XDG paths, project config, mode resolution.

This module handles all configuration for assetline:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.assetline/`` on macOS and Windows. See :func:`get_cache_dir` and
  :func:`get_data_dir`.
* **Project config** -- An ``assetline.json`` (or ``assetline.yaml``) file at
  the source root, deserialised into a :class:`~assetline.models.ProjectConfig`.
  See :func:`find_project_config` and :func:`load_project_config`.
* **Build mode** -- :func:`resolve_mode` turns the external mode signal
  (``--mode``/``--release`` or ``ASSETLINE_MODE``) into a
  :class:`~assetline.models.BuildMode`. Unknown or absent signals fall back
  to development.
* **Per-build config** -- :func:`resolve_pipeline_config` combines a project
  config and a mode into the frozen :class:`~assetline.models.PipelineConfig`.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from assetline.exceptions import ConfigurationError
from assetline.models import BuildMode, PipelineConfig, ProjectConfig

logger = logging.getLogger(__name__)

_APP_NAME = "assetline"
_PROJECT_CONFIG_FILENAMES = ("assetline.json", "assetline.yaml", "assetline.yml")

MODE_ENV_VAR = "ASSETLINE_MODE"
"""Environment variable carrying the build-mode signal."""

CONFIG_ENV_VAR = "ASSETLINE_CONFIG"
"""Environment variable pointing at an explicit project config file."""

_MODE_ALIASES = {
    "release": BuildMode.RELEASE,
    "production": BuildMode.RELEASE,
    "prod": BuildMode.RELEASE,
    "development": BuildMode.DEVELOPMENT,
    "dev": BuildMode.DEVELOPMENT,
}


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_cache_dir() -> Path:
    """Return the cache directory, creating it if necessary.

    Holds the persistent loader cache. Cached data can be safely deleted
    at any time.

    On Linux/BSD: ``$XDG_CACHE_HOME/assetline/`` (default ``~/.cache/assetline/``).
    On macOS/Windows: ``~/.assetline/cache/``.

    Returns:
        Absolute path to the cache directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CACHE_HOME", (".cache",)) / _APP_NAME
    else:
        path = _fallback_base_dir() / "cache"
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/assetline/`` (default ``~/.local/share/assetline/``).
    On macOS/Windows: ``~/.assetline/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Build mode ---


def resolve_mode(signal: Optional[str] = None) -> BuildMode:
    """Resolve the build mode from an explicit signal or ``ASSETLINE_MODE``.

    The explicit *signal* (from ``--mode``) wins over the environment.
    Matching is case-insensitive. Unknown values resolve to development
    rather than failing, so a typo can never produce an unintended release.

    Args:
        signal: The raw mode string, or ``None`` to consult the environment.

    Returns:
        The resolved :class:`~assetline.models.BuildMode`.
    """
    raw = signal if signal is not None else os.environ.get(MODE_ENV_VAR, "")
    mode = _MODE_ALIASES.get(raw.strip().lower())
    if mode is None:
        if raw.strip():
            logger.debug("Unrecognised build mode %r, using development", raw)
        return BuildMode.DEVELOPMENT
    return mode


# --- Project config ---


def find_project_config(
    source_root: Path, explicit: Optional[str] = None
) -> Optional[Path]:
    """Locate the project config file for *source_root*.

    Precedence (high to low):
        1. *explicit* path (``--config`` flag)
        2. ``ASSETLINE_CONFIG`` environment variable
        3. ``assetline.json``, ``assetline.yaml``, ``assetline.yml`` in *source_root*

    Returns:
        Path to the config file, or ``None`` when the project relies on
        defaults.

    Raises:
        ConfigurationError: If an explicitly named file does not exist.
    """
    named = explicit or os.environ.get(CONFIG_ENV_VAR)
    if named:
        path = Path(named)
        if not path.is_absolute():
            path = source_root / path
        if not path.is_file():
            raise ConfigurationError(f"Config file not found: {path}")
        return path

    for filename in _PROJECT_CONFIG_FILENAMES:
        candidate = source_root / filename
        if candidate.is_file():
            return candidate
    return None


def _parse_config_text(text: str, path: Path) -> Any:
    """Parse JSON, falling back to YAML for ``.yaml``/``.yml`` files."""
    if path.suffix in (".yaml", ".yml"):
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid project config at {path}: {exc}") from exc
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid project config at {path}: {exc}") from exc


def load_project_config(
    source_root: Path, explicit: Optional[str] = None
) -> ProjectConfig:
    """Load and validate the project config for *source_root*.

    Args:
        source_root: The project directory.
        explicit: Optional config path from the ``--config`` flag.

    Returns:
        The deserialised :class:`~assetline.models.ProjectConfig`. If no
        config file exists, a default instance is returned.

    Raises:
        ConfigurationError: If the file contains invalid JSON/YAML or fails
            Pydantic validation.
    """
    path = find_project_config(source_root, explicit)
    if path is None:
        logger.debug("No project config in %s, using defaults", source_root)
        return ProjectConfig()

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"Cannot read project config {path}: {exc}") from exc

    data = _parse_config_text(text, path)
    if data is None:
        return ProjectConfig()
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid project config at {path}: expected an object at top level"
        )
    try:
        return ProjectConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid project config at {path}: {exc}") from exc


def resolve_pipeline_config(
    project: ProjectConfig,
    mode: BuildMode,
    source_root: Path,
    output_root: Optional[Path] = None,
) -> PipelineConfig:
    """Build the frozen per-build :class:`~assetline.models.PipelineConfig`.

    Every mode-conditional decision is taken here, once: release builds
    get fingerprinted names and the optimizer, development builds get the
    loader ``debug`` flag.

    Args:
        project: The validated project config.
        mode: The resolved build mode.
        source_root: Project directory; relative config paths resolve here.
        output_root: Explicit output directory (``--output``), overriding
            ``project.output.path``.

    Returns:
        The resolved pipeline config.
    """
    root = source_root.resolve()
    out = output_root if output_root is not None else Path(project.output.path)
    if not out.is_absolute():
        out = root / out
    release = mode == BuildMode.RELEASE

    return PipelineConfig(
        mode=mode,
        source_root=root,
        output_root=out.resolve(),
        entry=(root / project.entry).resolve(),
        template=(root / project.template).resolve(),
        chunk_name=project.output.name,
        js_dir=project.output.js_dir.strip("/"),
        css_dir=project.output.css_dir.strip("/"),
        html_filename=project.output.html_filename,
        rules=tuple(project.rules),
        html=project.html,
        extract=project.extract,
        fingerprint=release,
        optimize=release,
        debug=not release,
        fingerprint_length=project.fingerprint_length,
        loader_timeout=project.loader_timeout,
        workers=project.workers,
        optimizer=project.optimizer,
    )
