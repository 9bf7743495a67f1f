"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific failure category and is referenced by the
corresponding :class:`~assetline.exceptions.AssetlineError` subclass.
CI scripts can inspect the exit code to tell a broken Elm module apart from
a broken project configuration without parsing stderr.

Example::

    $ assetline build --release
    $ echo $?
    4   # EXIT_COMPILE_ERROR -- a source file failed its loader chain
"""

EXIT_SUCCESS = 0
"""The build completed and every artifact was published."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments."""

EXIT_CONFIG_ERROR = 3
"""The project configuration, entry file, or HTML template is missing or malformed."""

EXIT_COMPILE_ERROR = 4
"""A source file failed its loader chain (syntax error, compiler crash, timeout)."""

EXIT_IO_ERROR = 5
"""A source file could not be read or an output file could not be written."""

EXIT_PLUGIN_ERROR = 10
"""A plugin failed to load, initialise, or execute."""
