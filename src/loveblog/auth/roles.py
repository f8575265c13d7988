# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    COUPLE = "couple"
    VISITOR = "visitor"

    @property
    def display_name(self) -> str:
        return "Contraseña de pareja" if self is Role.COUPLE else "Contraseña de visitante"


class RequiredRole(str, Enum):
    ANY_AUTHENTICATED = "any_authenticated"
    COUPLE_ONLY = "couple_only"


# Credentials are tried in this order at login; the first match wins.
LOGIN_PRIORITY = (Role.COUPLE, Role.VISITOR)
