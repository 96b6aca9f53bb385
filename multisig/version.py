"""
multisig.version — release string plus the build description shown by ``multisig --version``.

    >>> from multisig.version import __version__, version_string
    >>> version_string()          # e.g. "multisig 0.1.0 (v0.1.0-4-g1c2d3e4-dirty)"

The build description comes from MULTISIG_GIT_DESCRIBE when set (packaged builds and
containers stamp it there), otherwise from ``git describe`` run beside the package
sources. Outside a checkout it falls back to ``<version>+local``.
"""

from __future__ import annotations

import os
import subprocess
from functools import lru_cache
from pathlib import Path

__version__ = "0.1.0"

_SOURCE_DIR = Path(__file__).resolve().parent


@lru_cache(maxsize=1)
def git_describe() -> str:
    stamped = os.getenv("MULTISIG_GIT_DESCRIBE", "").strip()
    if stamped:
        return stamped
    try:
        out = subprocess.run(
            ["git", "describe", "--tags", "--dirty", "--always"],
            cwd=_SOURCE_DIR,
            capture_output=True,
            check=True,
            timeout=5,
        ).stdout
    except (OSError, subprocess.SubprocessError):
        out = b""
    return out.decode("utf-8", "replace").strip() or f"{__version__}+local"


def version_string() -> str:
    return f"multisig {__version__} ({git_describe()})"


__all__ = ["__version__", "git_describe", "version_string"]
