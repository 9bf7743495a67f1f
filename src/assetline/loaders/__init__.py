"""Loader chain: content-type keyed transforms applied to source files.

Key classes:

* :class:`Transform` -- One-method interface every stage implements.
* :class:`LoaderContext` -- Per-file state threaded through a chain.
* :class:`LoaderChain` -- Rule dispatch and left-to-right chain application.

Built-in transforms (``raw``, ``command``, ``postcss``, ``elm``, ``css``)
live in :mod:`assetline.loaders.builtin`; plugins may register more through
:class:`~assetline.plugins.PluginManager`.
"""

from assetline.loaders.base import LoaderContext, Transform, run_external
from assetline.loaders.builtin import BUILTIN_TRANSFORMS
from assetline.loaders.chain import LoaderChain, validate_rules

__all__ = [
    "BUILTIN_TRANSFORMS",
    "LoaderChain",
    "LoaderContext",
    "Transform",
    "run_external",
    "validate_rules",
]
