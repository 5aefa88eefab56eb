from __future__ import annotations

"""
tierledger.rpc.mount
--------------------

Wiring for the read-only tier surface.

Three entry points, from least to most opinionated:

    register_jsonrpc(dispatcher, engine)       # bind tier.* callables only
    mount_tierledger(app, engine)              # add GET routes to your FastAPI app
    create_app(engine, with_metrics=True)      # standalone FastAPI app

The REST routes are produced by `build_rest_router`; metrics, when requested,
come from the package registry in `tierledger.metrics`.
"""

import logging
from typing import Any, Callable, Dict, Optional

from . import RPC_PREFIX, TIER_OPENAPI_TAG
from .methods import EngineView, build_rest_router, make_methods

log = logging.getLogger(__name__)


def _binder(dispatcher: Any) -> Callable[[str, Callable[..., Any]], Any]:
    # JSON-RPC libraries disagree on the verb; accept either spelling.
    for attr in ("add", "register"):
        fn = getattr(dispatcher, attr, None)
        if callable(fn):
            return fn
    raise TypeError(f"{type(dispatcher).__name__} has neither .add() nor .register()")


def register_jsonrpc(dispatcher: Any, engine: EngineView) -> Dict[str, Callable[..., Any]]:
    """Bind every tier.* method onto `dispatcher`; returns the bound table."""
    bind = _binder(dispatcher)
    methods = make_methods(engine)
    for name, fn in methods.items():
        bind(name, fn)
    log.debug("registered %d tier JSON-RPC method(s)", len(methods))
    return methods


def mount_tierledger(
    app: Any,
    engine: EngineView,
    *,
    prefix: str = RPC_PREFIX,
    with_metrics: bool = False,
    metrics_path: Optional[str] = None,
) -> None:
    """
    Include the tier GET routes under `prefix` on a FastAPI app.

    With `with_metrics`, Prometheus exposition is added at `metrics_path`
    (default f"{prefix}/metrics").
    """
    app.include_router(build_rest_router(engine), prefix=prefix, tags=[TIER_OPENAPI_TAG["name"]])
    if with_metrics:
        from tierledger.metrics import mount_fastapi

        mount_fastapi(app, path=metrics_path or f"{prefix}/metrics")
    log.info("tier routes mounted at %s (metrics=%s)", prefix, with_metrics)


def create_app(engine: EngineView, *, prefix: str = RPC_PREFIX, with_metrics: bool = True):
    """Return a FastAPI app serving only the tier surface."""
    from fastapi import FastAPI

    from tierledger import get_version

    app = FastAPI(title="tierledger", version=get_version(), openapi_tags=[dict(TIER_OPENAPI_TAG)])
    mount_tierledger(app, engine, prefix=prefix, with_metrics=with_metrics, metrics_path="/metrics")
    return app


__all__ = ["create_app", "mount_tierledger", "register_jsonrpc"]
