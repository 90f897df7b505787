"""
SQLite state store for a collection.

Persists the snapshot produced by ``TypedTokenCollection.snapshot()``:
per-type minted / burned counters, gate flags, release timestamp, royalty,
base URI, reference-ledger balances and approvals, and vault totals.
Each save replaces the previous state inside one transaction.
"""
import json
import os
from typing import Any, Dict, Optional

import aiosqlite

from .exceptions import StorageError
from .logger import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1


class CollectionStore:
    """aiosqlite-backed snapshot store"""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self.connection: Optional[aiosqlite.Connection] = None

    @staticmethod
    async def create(db_path: str) -> "CollectionStore":
        """Open (creating if needed) the database and its schema"""
        self = CollectionStore(db_path)

        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        self.connection = await aiosqlite.connect(db_path)
        self.connection.row_factory = aiosqlite.Row

        await self.connection.execute("PRAGMA journal_mode=WAL")
        await self.connection.execute("PRAGMA synchronous=NORMAL")

        await self._init_schema()

        logger.info(f"Collection store opened: {db_path}")
        return self

    async def _init_schema(self):
        schema = """
        CREATE TABLE IF NOT EXISTS supply_counters (
            type_id INTEGER PRIMARY KEY,
            minted INTEGER NOT NULL CHECK (minted >= 0),
            burned INTEGER NOT NULL CHECK (burned >= 0 AND burned <= minted)
        );

        CREATE TABLE IF NOT EXISTS collection_state (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        );

        CREATE TABLE IF NOT EXISTS balances (
            holder TEXT NOT NULL,
            type_id INTEGER NOT NULL,
            amount INTEGER NOT NULL CHECK (amount > 0),
            PRIMARY KEY (holder, type_id)
        );

        CREATE TABLE IF NOT EXISTS approvals (
            owner TEXT NOT NULL,
            operator TEXT NOT NULL,
            PRIMARY KEY (owner, operator)
        );
        """
        await self.connection.executescript(schema)
        await self.connection.execute(
            "INSERT OR IGNORE INTO collection_state (key, value) VALUES (?, ?)",
            ("schemaVersion", json.dumps(SCHEMA_VERSION)),
        )
        await self.connection.commit()

    def _require_open(self) -> aiosqlite.Connection:
        if self.connection is None:
            raise StorageError("Store is not open")
        return self.connection

    async def save(self, snapshot: Dict[str, Any]) -> None:
        """Replace the stored state with *snapshot* atomically"""
        conn = self._require_open()
        scalar_keys = [k for k in snapshot if k not in ("supply", "ledger")]
        try:
            await conn.execute("DELETE FROM supply_counters")
            await conn.executemany(
                "INSERT INTO supply_counters (type_id, minted, burned) VALUES (?, ?, ?)",
                [(t, row["minted"], row["burned"]) for t, row in enumerate(snapshot["supply"])],
            )
            await conn.execute("DELETE FROM collection_state WHERE key != 'schemaVersion'")
            await conn.executemany(
                "INSERT INTO collection_state (key, value) VALUES (?, ?)",
                [(k, json.dumps(snapshot[k])) for k in scalar_keys],
            )
            ledger = snapshot.get("ledger")
            if ledger is not None:
                await conn.execute("DELETE FROM balances")
                await conn.executemany(
                    "INSERT INTO balances (holder, type_id, amount) VALUES (?, ?, ?)",
                    [(b["holder"], b["typeId"], b["amount"]) for b in ledger["balances"]],
                )
                await conn.execute("DELETE FROM approvals")
                await conn.executemany(
                    "INSERT INTO approvals (owner, operator) VALUES (?, ?)",
                    [(a["owner"], a["operator"]) for a in ledger["approvals"]],
                )
            await conn.commit()
        except (aiosqlite.Error, KeyError, TypeError, OverflowError) as e:
            await conn.rollback()
            raise StorageError(f"Failed to save collection state: {e}") from e
        logger.debug(f"Collection state saved to {self.db_path}")

    async def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored snapshot, or None if nothing was saved yet"""
        conn = self._require_open()

        async with conn.execute(
            "SELECT type_id, minted, burned FROM supply_counters ORDER BY type_id"
        ) as cursor:
            supply_rows = await cursor.fetchall()
        if not supply_rows:
            return None

        expected = list(range(len(supply_rows)))
        if [r["type_id"] for r in supply_rows] != expected:
            raise StorageError("Stored supply counters are not contiguous")

        snapshot: Dict[str, Any] = {
            "supply": [{"minted": r["minted"], "burned": r["burned"]} for r in supply_rows],
        }

        async with conn.execute("SELECT key, value FROM collection_state") as cursor:
            for row in await cursor.fetchall():
                if row["key"] == "schemaVersion":
                    continue
                snapshot[row["key"]] = json.loads(row["value"])

        async with conn.execute(
            "SELECT holder, type_id, amount FROM balances ORDER BY holder, type_id"
        ) as cursor:
            balances = [
                {"holder": r["holder"], "typeId": r["type_id"], "amount": r["amount"]}
                for r in await cursor.fetchall()
            ]
        async with conn.execute("SELECT owner, operator FROM approvals ORDER BY owner, operator") as cursor:
            approvals = [
                {"owner": r["owner"], "operator": r["operator"]}
                for r in await cursor.fetchall()
            ]
        snapshot["ledger"] = {"balances": balances, "approvals": approvals}
        return snapshot

    async def close(self):
        if self.connection is not None:
            await self.connection.close()
            self.connection = None
