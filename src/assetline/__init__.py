"""assetline -- Build versioned front-end bundles from an Elm + CSS source tree.

This package turns a single application entry point (JavaScript that imports
Elm modules and stylesheets) into a deployable static bundle: a JavaScript
chunk, an extracted stylesheet, and an HTML shell that references both.
Development builds use fixed file names; release builds minify and embed a
content fingerprint in every file name for cache busting.

Typical workflow::

    assetline build                    # development build into ./build
    ASSETLINE_MODE=release assetline build
    assetline build --release -o dist  # same, explicit flag

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: Project configuration discovery and build-mode resolution.
    pipeline: The build driver composing every stage.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
