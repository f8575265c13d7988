# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Live credential slots (one per role) on top of the settings table.

Hashes are stored under ``couple_password_hash`` / ``visitor_password_hash`` and
the visitor expiry under ``visitor_password_expires``. Every rotation is also
appended to ``password_history`` on a best-effort basis.
"""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from loveblog.auth.roles import Role
from loveblog.core.timeutil import Clock, parse_iso, to_iso, utcnow
from loveblog.infra.settings_repo import SettingRow, SettingsRepo

log = logging.getLogger(__name__)

HASH_KEYS = {
    Role.COUPLE: "couple_password_hash",
    Role.VISITOR: "visitor_password_hash",
}
VISITOR_EXPIRES_KEY = "visitor_password_expires"
ENCRYPTION_KEY = "encryption_key"

CREDENTIAL_KEYS = frozenset([*HASH_KEYS.values(), VISITOR_EXPIRES_KEY, ENCRYPTION_KEY])


@dataclass(frozen=True)
class CredentialRecord:
    role: Role
    secret_hash: str
    updated_at: Optional[datetime]
    expires_at: Optional[datetime] = None


@dataclass(frozen=True)
class HistoryEntry:
    role: Role
    secret_hash: str
    created_at: Optional[datetime]


class CredentialStore:
    def __init__(self, repo: SettingsRepo, clock: Clock = utcnow) -> None:
        self.repo = repo
        self.clock = clock

    def set_credential(self, role: Role, secret_hash: str, expires_at: Optional[datetime] = None) -> None:
        role = Role(role)
        if not secret_hash:
            raise ValueError("secret_hash vacío")
        if role is Role.COUPLE and expires_at is not None:
            raise ValueError("La credencial de pareja no puede caducar")

        now = to_iso(self.clock())
        values = {HASH_KEYS[role]: secret_hash}
        delete: List[str] = []
        if role is Role.VISITOR:
            if expires_at is not None:
                values[VISITOR_EXPIRES_KEY] = to_iso(expires_at)
            else:
                delete.append(VISITOR_EXPIRES_KEY)
        self.repo.put_many(values, updated_at=now, delete=delete)

    def get_credential(self, role: Role) -> Optional[CredentialRecord]:
        role = Role(role)
        keys = [HASH_KEYS[role]]
        if role is Role.VISITOR:
            keys.append(VISITOR_EXPIRES_KEY)
        rows = self.repo.get_many(keys)

        hash_row = rows.get(HASH_KEYS[role])
        if hash_row is None or not hash_row.value:
            return None
        expires_row = rows.get(VISITOR_EXPIRES_KEY)
        return CredentialRecord(
            role=role,
            secret_hash=hash_row.value,
            updated_at=parse_iso(hash_row.updated_at),
            expires_at=parse_iso(expires_row.value) if expires_row else None,
        )

    def get_visitor_expiry(self) -> Optional[datetime]:
        row = self.repo.get(VISITOR_EXPIRES_KEY)
        return parse_iso(row.value) if row else None

    def revoke_credential(self, role: Role) -> None:
        role = Role(role)
        if role is not Role.VISITOR:
            raise ValueError("Solo se puede revocar la credencial de visitante")
        self.repo.delete([HASH_KEYS[Role.VISITOR], VISITOR_EXPIRES_KEY])

    def append_history(self, role: Role, secret_hash: str) -> None:
        role = Role(role)
        try:
            self.repo.append_history(role.value, secret_hash, created_at=to_iso(self.clock()))
        except sqlite3.Error:
            # History is audit only; the credential update already happened.
            log.exception("Could not append password history entry role=%s", role.value)

    def query_history(self, limit: int) -> List[HistoryEntry]:
        return [
            HistoryEntry(
                role=Role(row.password_type),
                secret_hash=row.password_hash,
                created_at=parse_iso(row.created_at),
            )
            for row in self.repo.list_history(limit)
        ]

    def get_encryption_key(self) -> Optional[SettingRow]:
        return self.repo.get(ENCRYPTION_KEY)

    def set_encryption_key(self, value: str) -> None:
        self.repo.put(ENCRYPTION_KEY, value, updated_at=to_iso(self.clock()))
