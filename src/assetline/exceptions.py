"""Exception hierarchy for assetline.

All exceptions inherit from :class:`AssetlineError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`assetline.exit_codes`.
The top-level error handler in :func:`assetline.app.main` catches
``AssetlineError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Errors raised while the pipeline is running also carry a ``stage``
attribute (``configure``, ``load``, ``seal``, ``optimize``, ``name``,
``html`` or ``write``) naming the step that failed.

Subclass hierarchy::

    AssetlineError (exit 1)
    +-- InvalidUsageError       (exit 2)
    +-- ConfigurationError      (exit 3)
    |   +-- TemplateError       (exit 3)
    +-- CompileError            (exit 4)
    |   +-- LoaderTimeoutError  (exit 4)
    +-- BuildIOError            (exit 5)
    +-- SinkSealedError         (exit 1)
    +-- PluginError             (exit 10)
"""

from __future__ import annotations

from typing import Optional

from assetline.exit_codes import (
    EXIT_COMPILE_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_IO_ERROR,
    EXIT_PLUGIN_ERROR,
)


class AssetlineError(Exception):
    """Base exception for all assetline errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`assetline.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE
    stage: Optional[str] = None

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(AssetlineError):
    """Raised for invalid CLI arguments."""

    exit_code = EXIT_INVALID_USAGE


class ConfigurationError(AssetlineError):
    """Raised before any work begins when the project cannot be configured.

    Covers a missing entry file or template, invalid ``assetline.json``,
    unknown transform names, and overlapping loader rules.
    """

    exit_code = EXIT_CONFIG_ERROR


class TemplateError(ConfigurationError):
    """Raised when the HTML template lacks the tag used as injection point."""


class CompileError(AssetlineError):
    """Raised when a source file fails its loader chain.

    Args:
        file_path: Path of the source file whose transform failed.
        message: The underlying compiler or transform message.
    """

    exit_code = EXIT_COMPILE_ERROR

    def __init__(self, file_path: str, message: str):
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path
        self.message = message


class LoaderTimeoutError(CompileError):
    """Raised when an external transform exceeds the configured loader timeout."""


class BuildIOError(AssetlineError):
    """Raised when a source file cannot be read or an output file cannot be written.

    Named with a ``Build`` prefix to avoid shadowing the built-in ``IOError``.

    Args:
        path: The file system path involved.
        operation: ``"read"`` or ``"write"``.
        message: The underlying OS error text.
    """

    exit_code = EXIT_IO_ERROR

    def __init__(self, path: str, operation: str, message: str):
        super().__init__(f"Cannot {operation} {path}: {message}")
        self.path = path
        self.operation = operation


class SinkSealedError(AssetlineError):
    """Raised when text is emitted into an extraction sink that was already sealed."""


class PluginError(AssetlineError):
    """Raised when a plugin fails to load, initialise, or execute a hook."""

    exit_code = EXIT_PLUGIN_ERROR
