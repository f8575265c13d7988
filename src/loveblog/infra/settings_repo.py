# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Key/value settings table and the append-only password history table."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional

from loveblog.infra.db import connect


@dataclass(frozen=True)
class SettingRow:
    key: str
    value: str
    updated_at: str


@dataclass(frozen=True)
class HistoryRow:
    id: int
    password_type: str
    password_hash: str
    created_at: str


class SettingsRepo:
    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    def get(self, key: str) -> Optional[SettingRow]:
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT key, value, updated_at FROM settings WHERE key = ?",
                (key,),
            ).fetchone()
        if row is None or row["value"] is None:
            return None
        return SettingRow(key=row["key"], value=str(row["value"]), updated_at=str(row["updated_at"]))

    def get_many(self, keys: Iterable[str]) -> Dict[str, SettingRow]:
        keys = list(keys)
        if not keys:
            return {}
        marks = ", ".join("?" for _ in keys)
        with connect(self.db_path) as conn:
            rows = conn.execute(
                f"SELECT key, value, updated_at FROM settings WHERE key IN ({marks})",
                keys,
            ).fetchall()
        return {
            r["key"]: SettingRow(key=r["key"], value=str(r["value"]), updated_at=str(r["updated_at"]))
            for r in rows
            if r["value"] is not None
        }

    def put_many(self, values: Mapping[str, str], *, updated_at: str, delete: Iterable[str] = ()) -> None:
        """Upsert ``values`` and delete ``delete`` keys in a single transaction."""
        with connect(self.db_path) as conn:
            for key, value in values.items():
                conn.execute(
                    """
                    INSERT INTO settings (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
                    """,
                    (key, value, updated_at),
                )
            drop = [k for k in delete if k not in values]
            if drop:
                marks = ", ".join("?" for _ in drop)
                conn.execute(f"DELETE FROM settings WHERE key IN ({marks})", drop)

    def put(self, key: str, value: str, *, updated_at: str) -> None:
        self.put_many({key: value}, updated_at=updated_at)

    def delete(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        if not keys:
            return 0
        marks = ", ".join("?" for _ in keys)
        with connect(self.db_path) as conn:
            cur = conn.execute(f"DELETE FROM settings WHERE key IN ({marks})", keys)
            return int(cur.rowcount or 0)

    def append_history(self, password_type: str, password_hash: str, *, created_at: str) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO password_history (password_type, password_hash, created_at) VALUES (?, ?, ?)",
                (password_type, password_hash, created_at),
            )

    def list_history(self, limit: int) -> List[HistoryRow]:
        with connect(self.db_path) as conn:
            rows = conn.execute(
                """
                SELECT id, password_type, password_hash, created_at
                FROM password_history
                ORDER BY created_at DESC, id DESC
                LIMIT ?
                """,
                (max(0, int(limit)),),
            ).fetchall()
        return [
            HistoryRow(
                id=int(r["id"]),
                password_type=str(r["password_type"]),
                password_hash=str(r["password_hash"]),
                created_at=str(r["created_at"]),
            )
            for r in rows
        ]
