from __future__ import annotations

"""
tierledger.version — resolved package version.

Resolution order:
- TIERLEDGER_VERSION in the environment (packaging/CI override)
- installed distribution metadata for "tierledger"
- BASE_VERSION
"""


import os
from importlib import metadata

# Bump this on intentional releases.
BASE_VERSION = "0.1.0"


def build_version() -> str:
    v = os.getenv("TIERLEDGER_VERSION")
    if v:
        return v
    try:
        return metadata.version("tierledger")
    except metadata.PackageNotFoundError:
        return BASE_VERSION


__version__ = build_version()


def get_version() -> str:
    """Public helper returning the resolved version string."""
    return __version__


__all__ = ["__version__", "get_version", "BASE_VERSION"]
