"""Abstract base class for assetline plugins.

Every plugin must subclass :class:`Plugin` and implement the :attr:`name`
property. A plugin can contribute named transforms (usable in a rule's
``use`` list) and observe the build lifecycle through ``on_build_start``,
``on_build_complete`` and ``on_error``. All hooks default to no-ops so
plugins only override what they need.

Plugins are registered as entry points in the ``assetline.plugins`` group
and discovered at runtime by :class:`~assetline.plugins.manager.PluginManager`.

Example:
    A plugin adding a Sass transform::

        class SassPlugin(Plugin):
            @property
            def name(self) -> str:
                return "sass"

            def transforms(self) -> dict[str, Transform]:
                return {"sass": SassTransform()}
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from assetline.loaders.base import Transform
from assetline.models import BuildResult, PipelineConfig, ProjectConfig


class Plugin(ABC):
    """Base class for all assetline plugins.

    The plugin lifecycle is:

    1. Instantiation -- the :class:`PluginManager` calls the no-arg constructor.
    2. :meth:`on_init` -- called once with the project configuration.
    3. :meth:`transforms` -- queried once per build for named transforms.
    4. Build hooks -- called once per build.
    5. :meth:`cleanup` -- called once during shutdown.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the unique plugin name used for discovery and logging."""
        ...

    @property
    def version(self) -> str:
        return "0.1.0"

    @property
    def description(self) -> str:
        return ""

    def on_init(self, config: ProjectConfig) -> None:
        """Called once when the plugin is loaded by the :class:`PluginManager`.

        Args:
            config: The validated project configuration.
        """

    def transforms(self) -> dict[str, Transform]:
        """Return transforms to register, keyed by their ``use`` name.

        Names must not collide with built-in transforms or with another
        plugin's transforms.
        """
        return {}

    def on_build_start(self, config: PipelineConfig) -> None:
        """Called after the build is configured, before any file is loaded."""

    def on_build_complete(self, result: BuildResult) -> None:
        """Called after the HTML shell was written."""

    def on_error(self, error: Exception) -> None:
        """Called when the build fails.

        Exceptions raised here are logged and do not replace the original
        failure.
        """

    def cleanup(self) -> None:
        """Called once during shutdown to release plugin resources."""
