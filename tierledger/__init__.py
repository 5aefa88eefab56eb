from __future__ import annotations
"""
tierledger - membership credit & tier accounting.

This package tracks, per (collection, member) pair, how much of a collection's
fungible asset a member has deposited or spent, turns that activity into a
credit score, maps credit onto ascending tier thresholds, and keeps a
renewable "active" window per member. Asset movement and ownership lookups are
delegated to injected collaborators (see `tierledger.adapters`).

Public surface (lazily loaded):
- config, errors, metrics
- records, ledger, engine, credit
- adapters, rpc, cli
"""


from typing import List

try:
    from .version import __version__  # type: ignore
except Exception:  # pragma: no cover - safe fallback when building incrementally
    __version__ = "0.0.0+local"

__all__: List[str] = [
    "__version__",
    # lazily importable subpackages/modules
    "config",
    "errors",
    "metrics",
    "records",
    "ledger",
    "engine",
    "credit",
    "adapters",
    "rpc",
    "cli",
]

# --- Lazy module loader (PEP 562) -------------------------------------------------
import importlib


_lazy_modules = set(__all__) - {"__version__"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules)


def get_version() -> str:
    """Return the tierledger package version string."""
    return __version__
