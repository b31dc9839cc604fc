"""
Studio Compiler
===============

Dependency resolution and compilation orchestration for a multi-file
Solidity contract studio.

This package exposes:

- ``__version__``: semantic version string
- ``build_app()``: convenience creator for a configured FastAPI app

The engine itself lives in ``studio_compiler.engine`` and has no web
dependencies.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__", "build_app"]


def build_app():
    """
    Create and return a configured FastAPI application.

    Imported lazily so engine users do not pay for FastAPI at import time.
    """
    from .app import create_app

    return create_app()
