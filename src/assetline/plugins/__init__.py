"""Plugin system for assetline -- discovery, transforms, and build hooks.

Third-party packages can register plugins by declaring an entry point in the
``assetline.plugins`` group. At runtime, :class:`PluginManager` discovers and
loads those entry points; :class:`HookRunner` merges the transforms they
contribute and calls their build lifecycle hooks.

Key classes:

* :class:`Plugin` -- Abstract base class that all plugins must extend.
* :class:`PluginManager` -- Discovers, loads, and manages plugin lifecycle.
* :class:`HookRunner` -- Executes hooks across loaded plugins in order.
"""

from assetline.plugins.base import Plugin
from assetline.plugins.hooks import HookRunner
from assetline.plugins.manager import PluginManager

__all__ = ["Plugin", "HookRunner", "PluginManager"]
