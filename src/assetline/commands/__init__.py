"""Built-in CLI sub-commands for assetline.

* :mod:`~assetline.commands.build` -- run a build (``assetline build``).
* :mod:`~assetline.commands.inspect` -- show the resolved config, the
  loader rules, and the module graph of a project.
* :mod:`~assetline.commands.cache` -- loader cache statistics and cleanup.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``inspect`` and ``cache``) or a plain callback
function registered directly on the root app (``build``).
"""
