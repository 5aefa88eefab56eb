from __future__ import annotations

"""
tierledger.cli.inspect
----------------------

Inspect a tierledger snapshot database:
- Registered collections and their renewal terms / tier thresholds.
- Members of a collection with derived credit, tier and activity.
- A single member in detail.

Credit and tier are recomputed from the stored record fields; nothing derived
is persisted. Activity is judged against `--now` (defaults to wall-clock time).

Examples
--------
# List collections
python -m tierledger.cli.inspect collections --db tierledger.db

# Members of a collection, only the active ones, JSON
python -m tierledger.cli.inspect members club --active --json

# One member as of a given timestamp
python -m tierledger.cli.inspect member club member-7 --now 1700000000
"""

import json
import logging
import shutil
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer

from tierledger.adapters.state_db import NotFound, TierStateDB
from tierledger.config import configure_logging, load as load_config
from tierledger.credit import compute_credit, scan_tier
from tierledger.records.collection import CollectionConfig
from tierledger.records.member import MemberRecord

app = typer.Typer(
    name="tier-inspect",
    add_completion=False,
    no_args_is_help=True,
    help="Inspect collections, member credit and tier standing in a tierledger snapshot DB.",
)

# -------------------- utils --------------------


def _width(default: int = 100) -> int:
    try:
        return shutil.get_terminal_size((default, 20)).columns
    except Exception:
        return default


def _pad(s: str, n: int) -> str:
    if len(s) <= n:
        return s + " " * (n - len(s))
    if n <= 4:
        return s[:n]
    return s[: n - 1] + "…"


def _open_or_exit(db: Optional[str]) -> TierStateDB:
    path = db or load_config().db_path
    if path != ":memory:" and not path.startswith("file:") and not Path(path).exists():
        typer.secho(f"Snapshot DB not found: {path}", fg=typer.colors.RED, err=True)
        raise typer.Exit(2)
    return TierStateDB(path)


def _member_row(cfg: CollectionConfig, row: Dict[str, Any], now: int) -> Dict[str, Any]:
    rec = MemberRecord.from_dict(row)
    credit = compute_credit(rec, cfg.bonus_percent)
    active = rec.is_active(now)
    tier, needed = scan_tier(credit, cfg.tier_thresholds) if active else (0, 0)
    return {
        "collection_id": row["collection_id"],
        "member_id": row["member_id"],
        **rec.to_dict(),
        "credit": credit,
        "tier": tier,
        "credit_needed_for_next": needed,
        "active": active,
    }


def _print_table(rows: List[Dict[str, Any]], cols: List[tuple]) -> None:
    header = " ".join(_pad(name, w) for name, w, _ in cols)
    typer.secho(header, bold=True)
    for r in rows:
        typer.echo(" ".join(_pad(str(r.get(key, "-")), w) for _, w, key in cols)[: _width()])


# -------------------- logging --------------------


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Override TIERLEDGER_LOG_LEVEL for this invocation."
    ),
) -> None:
    cfg = load_config()
    if log_level:
        cfg.log_level = log_level.upper()
        try:
            cfg.validate()
        except ValueError as e:
            raise typer.BadParameter(str(e), param_hint="--log-level")
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    configure_logging(cfg)


# -------------------- commands --------------------


@app.command("collections")
def cmd_collections(
    db: Optional[str] = typer.Option(None, "--db", help="Snapshot DB path (default: $TIERLEDGER_DB or tierledger.db)."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List registered collections."""
    with _open_or_exit(db) as store:
        rows = store.list_collections()
    if json_out:
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    for r in rows:
        r["tiers"] = ",".join(str(t) for t in r["tier_thresholds"]) or "-"
    _print_table(
        rows,
        [
            ("COLLECTION", 16, "collection_id"),
            ("ASSET", 10, "asset_ref"),
            ("FEE SINK", 16, "fee_sink"),
            ("PRICE", 8, "renewal_price"),
            ("LENGTH", 9, "renewal_length"),
            ("BONUS%", 6, "bonus_percent"),
            ("TIERS", 24, "tiers"),
        ],
    )


@app.command("members")
def cmd_members(
    collection_id: str = typer.Argument(..., help="Collection id."),
    db: Optional[str] = typer.Option(None, "--db", help="Snapshot DB path (default: $TIERLEDGER_DB or tierledger.db)."),
    now: Optional[int] = typer.Option(None, "--now", help="Evaluate activity at this unix time."),
    active_only: bool = typer.Option(False, "--active", help="Only members whose window is still open."),
    limit: int = typer.Option(100, min=1, max=10000, help="Max number of members to show."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """List members of a collection with credit and tier."""
    at = int(time.time()) if now is None else now
    with _open_or_exit(db) as store:
        try:
            cfg = CollectionConfig.from_dict(store.get_collection(collection_id))
        except NotFound:
            typer.secho(f"Collection not registered: {collection_id}", fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
        raw = store.list_members(
            collection_id=collection_id,
            active_at=at if active_only else None,
            limit=limit,
        )
    rows = [_member_row(cfg, r, at) for r in raw]
    if json_out:
        typer.echo(json.dumps(rows, indent=2, sort_keys=True))
        return
    _print_table(
        rows,
        [
            ("MEMBER", 16, "member_id"),
            ("SPENT", 10, "tokens_spent"),
            ("DEPOSITED", 10, "tokens_deposited"),
            ("MINTED", 10, "minted_credit"),
            ("CREDIT", 10, "credit"),
            ("TIER", 5, "tier"),
            ("NEXT", 10, "credit_needed_for_next"),
            ("ACTIVE", 6, "active"),
        ],
    )


@app.command("member")
def cmd_member(
    collection_id: str = typer.Argument(..., help="Collection id."),
    member_id: str = typer.Argument(..., help="Member id."),
    db: Optional[str] = typer.Option(None, "--db", help="Snapshot DB path (default: $TIERLEDGER_DB or tierledger.db)."),
    now: Optional[int] = typer.Option(None, "--now", help="Evaluate activity at this unix time."),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show one member's record, credit and tier."""
    at = int(time.time()) if now is None else now
    with _open_or_exit(db) as store:
        try:
            cfg = CollectionConfig.from_dict(store.get_collection(collection_id))
            raw = store.get_member(collection_id, member_id)
        except NotFound as e:
            typer.secho(str(e), fg=typer.colors.RED, err=True)
            raise typer.Exit(1)
    row = _member_row(cfg, raw, at)
    if json_out:
        typer.echo(json.dumps(row, indent=2, sort_keys=True))
        return
    for k in sorted(row):
        typer.echo(f"{_pad(k, 24)} {row[k]}")


def get_app() -> typer.Typer:
    return app


if __name__ == "__main__":
    app()
