"""
Version helpers for Studio Compiler.

- ``__version__`` is the semantic version for packaging.
- ``build_info()`` reports the version plus build metadata injected by CI
  (``GIT_COMMIT``, ``BUILD_TIMESTAMP``) when present.
"""

from __future__ import annotations

import os
import platform
from typing import Dict, Optional

# Bump this when making a release; use semver (MAJOR.MINOR.PATCH)
__version__ = "0.1.0"


def build_info() -> Dict[str, Optional[str]]:
    return {
        "version": __version__,
        "commit": os.getenv("GIT_COMMIT") or None,
        "built_at": os.getenv("BUILD_TIMESTAMP") or None,
        "python": platform.python_version(),
    }


__all__ = ["__version__", "build_info"]
