from __future__ import annotations
"""
tierledger.cli
--------------

Operator command-line tools (Typer apps):
  - inspect : browse collections and member standing in a snapshot DB

Run with `python -m tierledger.cli.inspect --help`.
"""

__all__ = ["inspect"]
