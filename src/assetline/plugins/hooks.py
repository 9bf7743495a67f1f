"""Hook runner for the build lifecycle.

:class:`HookRunner` calls ``on_build_start``, ``on_build_complete`` and
``on_error`` on every loaded plugin in registration order, and merges the
transforms that plugins contribute into one name-keyed registry.
"""

from __future__ import annotations

import logging

from assetline.exceptions import PluginError
from assetline.loaders.base import Transform
from assetline.models import BuildResult, PipelineConfig
from assetline.plugins.base import Plugin

logger = logging.getLogger(__name__)


class HookRunner:
    """Executes plugin hooks across all loaded plugins in registration order.

    The runner is created by
    :meth:`~assetline.plugins.manager.PluginManager.get_hook_runner` and holds
    a snapshot of the plugin list at creation time.

    Args:
        plugins: Ordered list of plugin instances.
    """

    def __init__(self, plugins: list[Plugin]) -> None:
        self._plugins = list(plugins)

    def collect_transforms(self, builtin: dict[str, Transform]) -> dict[str, Transform]:
        """Return *builtin* extended with every plugin's transforms.

        Raises:
            PluginError: If a plugin registers a name that is already taken.
        """
        registry = dict(builtin)
        owners = {name: "built-in" for name in builtin}
        for plugin in self._plugins:
            for name, transform in plugin.transforms().items():
                if name in registry:
                    raise PluginError(
                        f"Plugin '{plugin.name}' registers transform '{name}', "
                        f"already provided by {owners[name]}"
                    )
                registry[name] = transform
                owners[name] = f"plugin '{plugin.name}'"
        return registry

    def run_build_start(self, config: PipelineConfig) -> None:
        for plugin in self._plugins:
            plugin.on_build_start(config)

    def run_build_complete(self, result: BuildResult) -> None:
        for plugin in self._plugins:
            plugin.on_build_complete(result)

    def run_error(self, error: Exception) -> None:
        """Execute ``on_error`` hooks across all plugins.

        A plugin whose error handler raises is logged and skipped, so the
        original failure is the one reported.
        """
        for plugin in self._plugins:
            try:
                plugin.on_error(error)
            except Exception as exc:
                logger.warning("Plugin '%s' failed in on_error: %s", plugin.name, exc)
