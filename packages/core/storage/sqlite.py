from __future__ import annotations

import json
import os
import sqlite3
from typing import Dict, List, Tuple

from .base import Document, RecordStore


class SQLiteRecordStore(RecordStore):
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self._db_path)

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS records (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    collection TEXT NOT NULL,
                    record_key TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    UNIQUE (collection, record_key)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS record_fields (
                    collection TEXT NOT NULL,
                    record_key TEXT NOT NULL,
                    field TEXT NOT NULL,
                    value TEXT NOT NULL,
                    PRIMARY KEY (collection, record_key, field)
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS record_fields_lookup_idx
                ON record_fields (collection, field, value)
                """
            )

    def insert(self, collection: str, key: str, document: Document, index: Dict[str, str]) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO records (collection, record_key, payload) VALUES (?, ?, ?)",
                (collection, key, json.dumps(document)),
            )
            self._write_index(conn, collection, key, index)

    def upsert(self, collection: str, key: str, document: Document, index: Dict[str, str]) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO records (collection, record_key, payload)
                VALUES (?, ?, ?)
                ON CONFLICT(collection, record_key) DO UPDATE SET
                    payload = excluded.payload
                """,
                (collection, key, json.dumps(document)),
            )
            self._write_index(conn, collection, key, index)

    def find(self, collection: str, query: Dict[str, str]) -> List[Document]:
        sql, params = self._select_keys_sql(collection, query)
        with self._connect() as conn:
            rows = conn.execute(
                f"SELECT payload FROM records WHERE seq IN ({sql}) ORDER BY seq ASC",
                params,
            ).fetchall()
            return [json.loads(row[0]) for row in rows]

    def delete(self, collection: str, query: Dict[str, str]) -> int:
        sql, params = self._select_keys_sql(collection, query)
        with self._connect() as conn:
            keys = [
                row[0]
                for row in conn.execute(
                    f"SELECT record_key FROM records WHERE seq IN ({sql})", params
                ).fetchall()
            ]
            for key in keys:
                conn.execute(
                    "DELETE FROM record_fields WHERE collection = ? AND record_key = ?",
                    (collection, key),
                )
                conn.execute(
                    "DELETE FROM records WHERE collection = ? AND record_key = ?",
                    (collection, key),
                )
            return len(keys)

    def delete_all(self, collection: str) -> int:
        with self._connect() as conn:
            conn.execute("DELETE FROM record_fields WHERE collection = ?", (collection,))
            result = conn.execute("DELETE FROM records WHERE collection = ?", (collection,))
            return result.rowcount

    def _write_index(
        self, conn: sqlite3.Connection, collection: str, key: str, index: Dict[str, str]
    ) -> None:
        conn.execute(
            "DELETE FROM record_fields WHERE collection = ? AND record_key = ?",
            (collection, key),
        )
        conn.executemany(
            """
            INSERT INTO record_fields (collection, record_key, field, value)
            VALUES (?, ?, ?, ?)
            """,
            [(collection, key, field, value) for field, value in index.items()],
        )

    def _select_keys_sql(self, collection: str, query: Dict[str, str]) -> Tuple[str, list]:
        sql = "SELECT seq FROM records WHERE collection = ?"
        params: list = [collection]
        for field, value in query.items():
            sql += (
                " AND record_key IN ("
                "SELECT record_key FROM record_fields"
                " WHERE collection = ? AND field = ? AND value = ?)"
            )
            params.extend([collection, field, value])
        return sql, params
