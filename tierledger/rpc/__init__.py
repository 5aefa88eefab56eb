from __future__ import annotations

"""
tierledger.rpc
--------------

Read-only RPC surface over a `TierEngine`:
  • JSON-RPC style callables (see `methods.make_methods`)
  • FastAPI route mounting (see `mount.mount_tierledger`)
"""

from typing import Dict, Final

# Base path under which tier endpoints are mounted into a host API.
RPC_PREFIX: Final[str] = "/tier"

# Suggested OpenAPI tag used by route modules in this package.
TIER_OPENAPI_TAG: Final[Dict[str, str]] = {
    "name": "tier",
    "description": "Membership credit, tier standing and collection configuration (read-only).",
}

__all__ = [
    "RPC_PREFIX",
    "TIER_OPENAPI_TAG",
]
