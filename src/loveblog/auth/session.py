# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from itsdangerous import BadSignature, URLSafeTimedSerializer

from loveblog.auth.passwords import verify_password
from loveblog.auth.roles import LOGIN_PRIORITY, Role
from loveblog.core.timeutil import Clock, parse_iso, to_iso, utcnow
from loveblog.errors import AuthFailure, ValidationError, VisitorExpired
from loveblog.infra.credential_store import CredentialStore
from loveblog.infra.db import connect

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientInfo:
    ip: str = ""
    user_agent: str = ""


@dataclass(frozen=True)
class Session:
    id: str
    role: Role
    login_time: datetime
    expires_at: Optional[datetime] = None
    authenticated: bool = True


class SessionStore:
    """Server-side session rows; anything older than ``max_age`` seconds is gone."""

    def __init__(self, db_path: str, *, max_age: int, clock: Clock = utcnow) -> None:
        self.db_path = db_path
        self.max_age = int(max_age)
        self.clock = clock

    def _stale_before(self) -> str:
        return to_iso(self.clock() - timedelta(seconds=self.max_age))

    def create(self, role: Role, expires_at: Optional[datetime] = None) -> Session:
        now = self.clock()
        session = Session(id=secrets.token_urlsafe(32), role=Role(role), login_time=now, expires_at=expires_at)
        with connect(self.db_path) as conn:
            conn.execute(
                "INSERT INTO sessions (id, role, login_time, expires_at, created_at) VALUES (?, ?, ?, ?, ?)",
                (
                    session.id,
                    session.role.value,
                    to_iso(now),
                    to_iso(expires_at) if expires_at else None,
                    to_iso(now),
                ),
            )
        return session

    def get(self, session_id: str) -> Optional[Session]:
        if not session_id:
            return None
        with connect(self.db_path) as conn:
            row = conn.execute(
                "SELECT id, role, login_time, expires_at, created_at FROM sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
            if row is None:
                return None
            if str(row["created_at"]) < self._stale_before():
                conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
                return None
        return Session(
            id=str(row["id"]),
            role=Role(row["role"]),
            login_time=parse_iso(row["login_time"]) or self.clock(),
            expires_at=parse_iso(row["expires_at"]),
        )

    def update_expiry(self, session_id: str, expires_at: Optional[datetime]) -> None:
        with connect(self.db_path) as conn:
            conn.execute(
                "UPDATE sessions SET expires_at = ? WHERE id = ?",
                (to_iso(expires_at) if expires_at else None, session_id),
            )

    def destroy(self, session_id: str) -> None:
        with connect(self.db_path) as conn:
            conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))

    def destroy_role(self, role: Role) -> int:
        with connect(self.db_path) as conn:
            cur = conn.execute("DELETE FROM sessions WHERE role = ?", (Role(role).value,))
            return int(cur.rowcount or 0)

    def purge_stale(self) -> int:
        with connect(self.db_path) as conn:
            cur = conn.execute("DELETE FROM sessions WHERE created_at < ?", (self._stale_before(),))
            return int(cur.rowcount or 0)


class SessionAuthority:
    """Login, logout and session lookup.

    The client only ever holds a signed, timed token wrapping the session id;
    role and expiry stay server-side in :class:`SessionStore`.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionStore,
        *,
        secret_key: str,
        salt: str = "loveblog.session.v1",
        clock: Clock = utcnow,
    ) -> None:
        if not secret_key:
            raise RuntimeError("Falta LOVEBLOG_SECRET_KEY para firmar las sesiones")
        self.credentials = credentials
        self.sessions = sessions
        self.clock = clock
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)

    def login(self, password: str, client: ClientInfo = ClientInfo()) -> Session:
        if not password:
            raise ValidationError("La contraseña no puede estar vacía")

        for role in LOGIN_PRIORITY:
            record = self.credentials.get_credential(role)
            if record is None or not verify_password(password, record.secret_hash):
                continue

            expires_at = None
            if role is Role.VISITOR and record.expires_at is not None:
                if self.clock() > record.expires_at:
                    log.warning(
                        "Visitor login rejected, credential expired at %s ip=%s user_agent=%s",
                        to_iso(record.expires_at),
                        client.ip,
                        client.user_agent,
                    )
                    raise VisitorExpired("El acceso de visitante ha caducado")
                expires_at = record.expires_at

            session = self.sessions.create(role, expires_at)
            log.info("Login ok role=%s ip=%s user_agent=%s", role.value, client.ip, client.user_agent)
            return session

        log.warning("Login failed, wrong password ip=%s user_agent=%s", client.ip, client.user_agent)
        raise AuthFailure()

    def logout(self, session_id: Optional[str]) -> None:
        if session_id:
            self.sessions.destroy(session_id)

    def issue_token(self, session: Session) -> str:
        return self._serializer.dumps({"sid": session.id})

    def load(self, token: Optional[str]) -> Optional[Session]:
        if not token:
            return None
        try:
            data = self._serializer.loads(token, max_age=self.sessions.max_age)
        except BadSignature:
            return None
        sid = str((data or {}).get("sid") or "").strip() if isinstance(data, dict) else ""
        return self.sessions.get(sid) if sid else None

    @staticmethod
    def status(session: Optional[Session]) -> dict:
        if session is None or not session.authenticated:
            return {"authenticated": False, "role": None, "login_time": None, "expires_at": None}
        return {
            "authenticated": True,
            "role": session.role,
            "login_time": session.login_time,
            "expires_at": session.expires_at,
        }
