from __future__ import annotations

"""
tierledger SQLite state adapter
===============================

Purpose
-------
Durable snapshots of the two ledger tables (collection configs and member
records). The engine itself works on an in-memory `LedgerState`; this adapter
writes `LedgerState.dump()` into SQLite and reads it back for `load()`, and
serves read-only listings to the CLI.

Design notes
------------
- Single-writer, many-reader friendly via WAL.
- Schema versioned in a `meta` table; tables are created idempotently on open.
- `save_state` replaces the whole snapshot inside one transaction, so a reader
  never observes a half-written ledger.

Example
-------
    db = TierStateDB("tierledger.db")
    db.save_state(engine.state.dump())
    state = LedgerState.load(db.load_state())
"""

import contextlib
import json
import logging
import os
import sqlite3
import threading
import time
from typing import Any, Dict, Iterator, List, Mapping, Optional

log = logging.getLogger(__name__)

# ---- Errors -----------------------------------------------------------------


class TierStateError(RuntimeError):
    """Base error for the tierledger state DB."""


class NotFound(TierStateError):
    """Requested record not found."""


# ---- Utilities ---------------------------------------------------------------


def _now_s() -> int:
    return int(time.time())


# ---- Main adapter ------------------------------------------------------------


class TierStateDB:
    """
    Tiny SQLite adapter for ledger snapshots.

    Thread-safe for simple concurrent access via an internal RLock.
    """

    SCHEMA_VERSION = 1

    def __init__(self, path: str) -> None:
        """
        Open or create the SQLite database.

        `path` may be a filesystem path, ":memory:", or a URI
        (e.g. "file:tierledger.db?mode=rwc").
        """
        uri = path.startswith("file:")
        self._db = sqlite3.connect(
            path,
            uri=uri,
            check_same_thread=False,
            isolation_level=None,  # autocommit; transactions are explicit
        )
        self._db.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._apply_pragmas()
        # executescript() commits any open transaction, so DDL runs in autocommit.
        with self._lock:
            self._migrate()

    # -- lifecycle -------------------------------------------------------------

    def close(self) -> None:
        with self._lock:
            self._db.close()

    def __enter__(self) -> "TierStateDB":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()

    @contextlib.contextmanager
    def tx(self) -> Iterator[None]:
        with self._lock:
            self._db.execute("BEGIN IMMEDIATE")
            try:
                yield
            except Exception:
                self._db.execute("ROLLBACK")
                raise
            self._db.execute("COMMIT")

    def _apply_pragmas(self) -> None:
        cur = self._db.cursor()
        cur.execute("PRAGMA journal_mode=WAL")
        cur.execute("PRAGMA synchronous=NORMAL")
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    # -- schema ----------------------------------------------------------------

    def _migrate(self) -> None:
        cur = self._db.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS meta (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        cur.execute("SELECT value FROM meta WHERE key='schema_version'")
        row = cur.fetchone()
        if not row:
            cur.execute(
                "INSERT INTO meta(key, value) VALUES('schema_version', ?)",
                (str(self.SCHEMA_VERSION),),
            )
        elif int(row["value"]) > self.SCHEMA_VERSION:
            raise TierStateError(
                f"database schema {row['value']} is newer than supported {self.SCHEMA_VERSION}"
            )
        cur.executescript(
            """
            CREATE TABLE IF NOT EXISTS collections (
                collection_id   TEXT PRIMARY KEY,
                asset_ref       TEXT NOT NULL,
                fee_sink        TEXT NOT NULL,
                renewal_price   INTEGER NOT NULL,
                renewal_length  INTEGER NOT NULL,
                bonus_percent   INTEGER NOT NULL,
                thresholds_json TEXT NOT NULL,
                updated_at      INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS members (
                collection_id    TEXT NOT NULL,
                member_id        TEXT NOT NULL,
                tokens_spent     INTEGER NOT NULL DEFAULT 0,
                tokens_deposited INTEGER NOT NULL DEFAULT 0,
                minted_credit    INTEGER NOT NULL DEFAULT 0,
                active_until     INTEGER NOT NULL DEFAULT 0,
                updated_at       INTEGER NOT NULL,
                PRIMARY KEY (collection_id, member_id),
                FOREIGN KEY(collection_id) REFERENCES collections(collection_id) ON DELETE CASCADE
            );
            CREATE INDEX IF NOT EXISTS idx_members_active ON members(active_until);
            """
        )
        cur.close()

    # ---- collections ---------------------------------------------------------

    def upsert_collection(self, cfg: Mapping[str, Any]) -> None:
        """Insert or replace one collection row (keys as in CollectionConfig.to_dict)."""
        self._db.execute(
            """
            INSERT INTO collections(collection_id,asset_ref,fee_sink,renewal_price,renewal_length,bonus_percent,thresholds_json,updated_at)
            VALUES(?,?,?,?,?,?,?,?)
            ON CONFLICT(collection_id) DO UPDATE SET
                asset_ref=excluded.asset_ref,
                fee_sink=excluded.fee_sink,
                renewal_price=excluded.renewal_price,
                renewal_length=excluded.renewal_length,
                bonus_percent=excluded.bonus_percent,
                thresholds_json=excluded.thresholds_json,
                updated_at=excluded.updated_at
            """,
            (
                str(cfg["collection_id"]),
                str(cfg["asset_ref"]),
                str(cfg["fee_sink"]),
                int(cfg["renewal_price"]),
                int(cfg["renewal_length"]),
                int(cfg.get("bonus_percent", 0)),
                json.dumps([int(t) for t in cfg.get("tier_thresholds", [])]),
                _now_s(),
            ),
        )

    def get_collection(self, collection_id: str) -> Dict[str, Any]:
        row = self._db.execute(
            "SELECT * FROM collections WHERE collection_id=?", (collection_id,)
        ).fetchone()
        if not row:
            raise NotFound(f"collection {collection_id} not found")
        return self._row_collection(row)

    def list_collections(self) -> List[Dict[str, Any]]:
        rows = self._db.execute("SELECT * FROM collections ORDER BY collection_id").fetchall()
        return [self._row_collection(r) for r in rows]

    # ---- members -------------------------------------------------------------

    def upsert_member(self, member: Mapping[str, Any]) -> None:
        self._db.execute(
            """
            INSERT INTO members(collection_id,member_id,tokens_spent,tokens_deposited,minted_credit,active_until,updated_at)
            VALUES(?,?,?,?,?,?,?)
            ON CONFLICT(collection_id, member_id) DO UPDATE SET
                tokens_spent=excluded.tokens_spent,
                tokens_deposited=excluded.tokens_deposited,
                minted_credit=excluded.minted_credit,
                active_until=excluded.active_until,
                updated_at=excluded.updated_at
            """,
            (
                str(member["collection_id"]),
                str(member["member_id"]),
                int(member.get("tokens_spent", 0)),
                int(member.get("tokens_deposited", 0)),
                int(member.get("minted_credit", 0)),
                int(member.get("active_until", 0)),
                _now_s(),
            ),
        )

    def get_member(self, collection_id: str, member_id: str) -> Dict[str, Any]:
        row = self._db.execute(
            "SELECT * FROM members WHERE collection_id=? AND member_id=?",
            (collection_id, member_id),
        ).fetchone()
        if not row:
            raise NotFound(f"member {collection_id}/{member_id} not found")
        return self._row_member(row)

    def list_members(
        self,
        *,
        collection_id: Optional[str] = None,
        active_at: Optional[int] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM members WHERE 1=1"
        args: List[Any] = []
        if collection_id:
            sql += " AND collection_id=?"
            args.append(collection_id)
        if active_at is not None:
            sql += " AND active_until>?"
            args.append(int(active_at))
        sql += " ORDER BY collection_id, member_id LIMIT ? OFFSET ?"
        args.extend([int(limit), int(offset)])
        rows = self._db.execute(sql, args).fetchall()
        return [self._row_member(r) for r in rows]

    # ---- whole-state snapshots ----------------------------------------------

    def save_state(self, snapshot: Mapping[str, Any]) -> None:
        """Replace the stored ledger with `snapshot` (the shape of LedgerState.dump())."""
        collections = snapshot.get("collections", {})
        members = snapshot.get("members", [])
        with self.tx():
            self._db.execute("DELETE FROM members")
            self._db.execute("DELETE FROM collections")
            for cfg in collections.values():
                self.upsert_collection(cfg)
            for m in members:
                self.upsert_member(m)
        log.debug("saved snapshot: %d collection(s), %d member(s)", len(collections), len(members))

    def load_state(self) -> Dict[str, Any]:
        """Return a snapshot dict suitable for LedgerState.load()."""
        collections = {c["collection_id"]: c for c in self.list_collections()}
        rows = self._db.execute("SELECT * FROM members ORDER BY collection_id, member_id").fetchall()
        members = [self._row_member(r) for r in rows]
        return {"collections": collections, "members": members}

    # ---- rows → dicts --------------------------------------------------------

    def _row_collection(self, row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "collection_id": row["collection_id"],
            "asset_ref": row["asset_ref"],
            "fee_sink": row["fee_sink"],
            "renewal_price": int(row["renewal_price"]),
            "renewal_length": int(row["renewal_length"]),
            "bonus_percent": int(row["bonus_percent"]),
            "tier_thresholds": json.loads(row["thresholds_json"]),
        }

    def _row_member(self, row: sqlite3.Row) -> Dict[str, Any]:
        return {
            "collection_id": row["collection_id"],
            "member_id": row["member_id"],
            "tokens_spent": int(row["tokens_spent"]),
            "tokens_deposited": int(row["tokens_deposited"]),
            "minted_credit": int(row["minted_credit"]),
            "active_until": int(row["active_until"]),
        }


def open_default() -> TierStateDB:
    """
    Open TierStateDB at the path from TIERLEDGER_DB (default: ./tierledger.db).
    """
    path = os.environ.get("TIERLEDGER_DB", "tierledger.db")
    return TierStateDB(path)


__all__ = [
    "TierStateDB",
    "TierStateError",
    "NotFound",
    "open_default",
]
