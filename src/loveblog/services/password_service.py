# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Credential lifecycle: rotation, visitor invitations, revocation, audit.

Plaintext passwords pass through these functions but are never logged nor
persisted. ``generate_visitor`` hands the generated plaintext back exactly once.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from loveblog.auth.passwords import (
    generate_encryption_key,
    generate_random_password,
    hash_password,
    validate_strength,
    verify_password,
)
from loveblog.auth.roles import Role
from loveblog.auth.session import SessionStore
from loveblog.core.timeutil import Clock, to_iso, utcnow
from loveblog.errors import ValidationError
from loveblog.infra.credential_store import CredentialStore

log = logging.getLogger(__name__)

MIN_EXPIRY_HOURS = 1
MAX_EXPIRY_HOURS = 168  # 7 days
MIN_GENERATED_LENGTH = 6
MAX_GENERATED_LENGTH = 20
DEFAULT_EXPIRY_HOURS = 24
DEFAULT_GENERATED_LENGTH = 8
HISTORY_LIMIT = 10


@dataclass(frozen=True)
class VisitorIssue:
    expires_at: datetime
    expiry_hours: int
    password: Optional[str] = None


def _iso_or_none(dt: Optional[datetime]) -> Optional[str]:
    return to_iso(dt) if dt else None


def _check_int_range(name: str, value: Any, lo: int, hi: int, message: str) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise ValidationError(f"{name} debe ser un número entero")
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} debe ser un número entero") from None
    if n < lo or n > hi:
        raise ValidationError(message)
    return n


def check_expiry_hours(value: Any) -> int:
    return _check_int_range(
        "expiryHours",
        value,
        MIN_EXPIRY_HOURS,
        MAX_EXPIRY_HOURS,
        f"La validez debe estar entre {MIN_EXPIRY_HOURS} y {MAX_EXPIRY_HOURS} horas",
    )


def check_generated_length(value: Any) -> int:
    return _check_int_range(
        "length",
        value,
        MIN_GENERATED_LENGTH,
        MAX_GENERATED_LENGTH,
        f"La longitud debe estar entre {MIN_GENERATED_LENGTH} y {MAX_GENERATED_LENGTH} caracteres",
    )


def _require_strong(password: str, message: str) -> None:
    result = validate_strength(password)
    if not result.valid:
        raise ValidationError(message, details=result.errors)


class PasswordService:
    def __init__(
        self,
        credentials: CredentialStore,
        clock: Clock = utcnow,
        sessions: Optional[SessionStore] = None,
    ) -> None:
        self.credentials = credentials
        self.clock = clock
        self.sessions = sessions

    # -- status / audit --

    def status(self) -> Dict[str, Any]:
        now = self.clock()
        couple = self.credentials.get_credential(Role.COUPLE)
        visitor = self.credentials.get_credential(Role.VISITOR)
        key = self.credentials.get_encryption_key()

        visitor_status: Dict[str, Any] = {
            "isSet": visitor is not None,
            "updatedAt": _iso_or_none(visitor.updated_at) if visitor else None,
            "expiresAt": None,
            "isExpired": False,
            "hoursLeft": 0,
        }
        if visitor is not None and visitor.expires_at is not None:
            visitor_status["expiresAt"] = to_iso(visitor.expires_at)
            visitor_status["isExpired"] = now > visitor.expires_at
            if not visitor_status["isExpired"]:
                remaining = (visitor.expires_at - now).total_seconds() / 3600
                visitor_status["hoursLeft"] = int(math.ceil(remaining))

        return {
            "couplePassword": {
                "isSet": couple is not None,
                "updatedAt": _iso_or_none(couple.updated_at) if couple else None,
            },
            "visitorPassword": visitor_status,
            "encryptionKey": {
                "isSet": key is not None,
                "fingerprint": key.value[:8] if key else None,
                "updatedAt": key.updated_at if key else None,
            },
        }

    def history(self, limit: int = HISTORY_LIMIT) -> List[Dict[str, Any]]:
        return [
            {
                "type": entry.role.value,
                "createdAt": _iso_or_none(entry.created_at),
                "displayName": entry.role.display_name,
            }
            for entry in self.credentials.query_history(limit)
        ]

    # -- couple --

    def set_couple(self, new_password: str) -> None:
        """Administrative setter: no current password required."""
        _require_strong(new_password, "La contraseña no cumple los requisitos")
        self._store(Role.COUPLE, hash_password(new_password))
        log.info("Couple password set")

    def change_couple(self, current_password: str, new_password: str) -> None:
        if not current_password or not new_password:
            raise ValidationError("La contraseña actual y la nueva son obligatorias")

        current = self.credentials.get_credential(Role.COUPLE)
        if current is None:
            raise ValidationError("No hay ninguna contraseña de pareja configurada")
        if not verify_password(current_password, current.secret_hash):
            log.warning("Couple password change rejected, current password mismatch")
            raise ValidationError("La contraseña actual no es correcta")

        _require_strong(new_password, "La nueva contraseña no cumple los requisitos")
        self._store(Role.COUPLE, hash_password(new_password))
        log.info("Couple password changed")

    # -- visitor --

    def set_visitor(self, password: str, expiry_hours: Any = DEFAULT_EXPIRY_HOURS) -> VisitorIssue:
        if not password:
            raise ValidationError("La contraseña de visitante no puede estar vacía")
        _require_strong(password, "La contraseña no cumple los requisitos")
        hours = check_expiry_hours(expiry_hours)

        expires_at = self._store_visitor(hash_password(password), hours)
        log.info("Visitor password set expiry_hours=%s expires_at=%s", hours, to_iso(expires_at))
        return VisitorIssue(expires_at=expires_at, expiry_hours=hours)

    def generate_visitor(
        self,
        expiry_hours: Any = DEFAULT_EXPIRY_HOURS,
        length: Any = DEFAULT_GENERATED_LENGTH,
    ) -> VisitorIssue:
        hours = check_expiry_hours(expiry_hours)
        n = check_generated_length(length)

        password = generate_random_password(n)
        expires_at = self._store_visitor(hash_password(password), hours)
        log.info(
            "Random visitor password generated length=%s expiry_hours=%s expires_at=%s",
            n,
            hours,
            to_iso(expires_at),
        )
        return VisitorIssue(expires_at=expires_at, expiry_hours=hours, password=password)

    def revoke_visitor(self) -> None:
        self.credentials.revoke_credential(Role.VISITOR)
        ended = self.sessions.destroy_role(Role.VISITOR) if self.sessions is not None else 0
        log.info("Visitor password revoked, ended %s visitor sessions", ended)

    # -- misc --

    def regenerate_encryption_key(self) -> str:
        key = generate_encryption_key()
        self.credentials.set_encryption_key(key)
        log.info("Encryption key regenerated fingerprint=%s", key[:8])
        return key

    def check_password(self, role: Role, password: str) -> bool:
        record = self.credentials.get_credential(role)
        if record is None:
            return False
        return verify_password(password, record.secret_hash)

    def _store_visitor(self, secret_hash: str, hours: int) -> datetime:
        expires_at = self.clock() + timedelta(hours=hours)
        self._store(Role.VISITOR, secret_hash, expires_at)
        return expires_at

    def _store(self, role: Role, secret_hash: str, expires_at: Optional[datetime] = None) -> None:
        self.credentials.set_credential(role, secret_hash, expires_at)
        self.credentials.append_history(role, secret_hash)
