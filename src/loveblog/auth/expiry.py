# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Lazy visitor expiry check, run before any authenticated operation.

There is no background sweep: an expired visitor session lingers until the
next request touches it, at which point it is destroyed.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from loveblog.auth.roles import Role
from loveblog.auth.session import Session, SessionStore
from loveblog.config import EXPIRY_SOURCES
from loveblog.core.timeutil import Clock, to_iso, utcnow
from loveblog.errors import VisitorExpired
from loveblog.infra.credential_store import CredentialStore

log = logging.getLogger(__name__)


class VisitorExpiryEnforcer:
    def __init__(
        self,
        credentials: CredentialStore,
        sessions: SessionStore,
        *,
        source: str = "store",
        clock: Clock = utcnow,
    ) -> None:
        if source not in EXPIRY_SOURCES:
            raise ValueError(f"Origen de caducidad desconocido: {source!r}")
        self.credentials = credentials
        self.sessions = sessions
        self.source = source
        self.clock = clock

    def effective_expiry(self, session: Session) -> Optional[datetime]:
        if self.source == "session":
            return session.expires_at
        # A missing stored expiry means the visitor credential does not expire.
        expiry = self.credentials.get_visitor_expiry()
        if expiry != session.expires_at:
            self.sessions.update_expiry(session.id, expiry)
        return expiry

    def check(self, session: Optional[Session]) -> Optional[Session]:
        """Return the (possibly refreshed) session, or raise ``VisitorExpired``."""
        if session is None or not session.authenticated or session.role is not Role.VISITOR:
            return session

        if self.source == "store" and self.credentials.get_credential(Role.VISITOR) is None:
            log.info("Visitor credential revoked, ending session session_id=%s", session.id)
            self.sessions.destroy(session.id)
            raise VisitorExpired()

        expiry = self.effective_expiry(session)
        if expiry is not None and self.clock() > expiry:
            log.info("Visitor session expired session_id=%s expired_at=%s", session.id, to_iso(expiry))
            self.sessions.destroy(session.id)
            raise VisitorExpired()

        if expiry != session.expires_at:
            return replace(session, expires_at=expiry)
        return session
