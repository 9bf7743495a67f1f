"""Plugin manager -- discovery, loading, and lifecycle management.

This module contains :class:`PluginManager`, the central coordinator for the
plugin system. It discovers plugins registered as Python entry points,
applies enable/disable filtering from the project configuration, and
provides a lazily-cached :class:`~assetline.plugins.hooks.HookRunner`.

The entry-point group used for discovery is ``assetline.plugins``.
Third-party packages register plugins by declaring an entry point under this
group in their ``pyproject.toml``::

    [project.entry-points."assetline.plugins"]
    sass = "assetline_sass.plugin:SassPlugin"
"""

from __future__ import annotations

import importlib.metadata
import logging
from typing import Optional

from assetline.exceptions import PluginError
from assetline.models import ProjectConfig
from assetline.plugins.base import Plugin
from assetline.plugins.hooks import HookRunner

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "assetline.plugins"
"""The entry-point group name used for plugin discovery."""


class PluginManager:
    """Discovers, loads, and manages the lifecycle of assetline plugins.

    The *enabled* and *disabled* lists in
    :class:`~assetline.models.PluginsConfig` act as an explicit
    allowlist/blocklist. When *enabled* is non-empty only those plugins are
    loaded; otherwise all discovered plugins that are **not** in *disabled*
    are loaded.

    Example:
        Typical usage::

            manager = PluginManager()
            manager.discover(project_config)
            runner = manager.get_hook_runner()
            transforms = runner.collect_transforms(builtin)
    """

    def __init__(self) -> None:
        self._plugins: dict[str, Plugin] = {}
        self._hook_runner: Optional[HookRunner] = None

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def discover(self, config: ProjectConfig) -> list[str]:
        """Discover and load available plugins via Python entry points.

        Returns:
            A list of plugin names that were successfully loaded. Plugins
            that fail to load are logged as warnings and skipped.
        """
        loaded_names: list[str] = []
        enabled_set = set(config.plugins.enabled)
        disabled_set = set(config.plugins.disabled)

        for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
            name = ep.name
            if enabled_set and name not in enabled_set:
                logger.debug("Plugin '%s' not in enabled list, skipping", name)
                continue
            if name in disabled_set:
                logger.debug("Plugin '%s' is disabled, skipping", name)
                continue

            try:
                plugin_cls = ep.load()
                plugin: Plugin = plugin_cls()
                self.load_plugin(name, plugin, config)
                loaded_names.append(name)
            except Exception as exc:
                logger.warning("Failed to load plugin '%s': %s", name, exc)

        return loaded_names

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_plugin(self, name: str, plugin: Plugin, config: ProjectConfig) -> None:
        """Initialise and register a single plugin instance.

        Raises:
            PluginError: If a plugin with the same *name* is already loaded.
        """
        if name in self._plugins:
            raise PluginError(f"Plugin '{name}' is already loaded")

        plugin.on_init(config)
        self._plugins[name] = plugin
        # Invalidate cached hook runner so it picks up the new plugin.
        self._hook_runner = None
        logger.info("Loaded plugin '%s' v%s", name, plugin.version)

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def get_plugin(self, name: str) -> Plugin:
        """Retrieve a loaded plugin by its registered name.

        Raises:
            PluginError: If no plugin with the given *name* is loaded.
        """
        try:
            return self._plugins[name]
        except KeyError:
            raise PluginError(f"Plugin '{name}' is not loaded") from None

    def list_plugins(self) -> list[dict[str, str]]:
        """List all loaded plugins with their name, version and description."""
        return [
            {
                "name": plugin.name,
                "version": plugin.version,
                "description": plugin.description,
            }
            for plugin in self._plugins.values()
        ]

    # ------------------------------------------------------------------
    # Hook runner
    # ------------------------------------------------------------------

    def get_hook_runner(self) -> HookRunner:
        """Return the :class:`~assetline.plugins.hooks.HookRunner` for all loaded plugins.

        The runner is created on first access and rebuilt after
        :meth:`load_plugin` registers another plugin.
        """
        if self._hook_runner is None:
            self._hook_runner = HookRunner(list(self._plugins.values()))
        return self._hook_runner

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def cleanup(self) -> None:
        """Clean up all loaded plugins and reset internal state.

        Exceptions from individual plugins are logged so that one plugin's
        failure does not prevent others from cleaning up.
        """
        for name, plugin in self._plugins.items():
            try:
                plugin.cleanup()
            except Exception as exc:
                logger.warning("Error cleaning up plugin '%s': %s", name, exc)
        self._plugins.clear()
        self._hook_runner = None
