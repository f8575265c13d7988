# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

from loveblog.auth.roles import Role
from loveblog.core.timeutil import Clock, to_iso, utcnow
from loveblog.errors import ValidationError
from loveblog.infra.credential_store import VISITOR_EXPIRES_KEY
from loveblog.infra.settings_repo import SettingsRepo

log = logging.getLogger(__name__)

PUBLIC_KEYS = (
    "love_start_date",
    "couple_name_1",
    "couple_name_2",
    "couple_avatar_1",
    "couple_avatar_2",
)
COUPLE_ONLY_KEYS = (VISITOR_EXPIRES_KEY,)

# Credential keys are managed through PasswordService only.
UPDATABLE_KEYS = PUBLIC_KEYS


class SettingsService:
    def __init__(self, repo: SettingsRepo, clock: Clock = utcnow) -> None:
        self.repo = repo
        self.clock = clock

    def visible_settings(self, role: Role) -> Dict[str, str]:
        keys = list(PUBLIC_KEYS)
        if Role(role) is Role.COUPLE:
            keys.extend(COUPLE_ONLY_KEYS)
        rows = self.repo.get_many(keys)
        return {k: rows[k].value for k in keys if k in rows}

    def update(self, values: Mapping[str, Any]) -> int:
        if not isinstance(values, Mapping):
            raise ValidationError("El formato de los ajustes no es correcto")

        updates = {k: str(v) for k, v in values.items() if k in UPDATABLE_KEYS and v is not None}
        if not updates:
            raise ValidationError("No hay ajustes válidos para actualizar")

        self.repo.put_many(updates, updated_at=to_iso(self.clock()))
        log.info("Settings updated keys=%s", ",".join(sorted(updates)))
        return len(updates)
