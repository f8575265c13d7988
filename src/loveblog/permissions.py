# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import Request

from loveblog.auth.roles import RequiredRole, Role
from loveblog.auth.session import ClientInfo, Session
from loveblog.errors import AuthenticationRequired, InsufficientPermissions

log = logging.getLogger(__name__)


class DenyReason(str, Enum):
    AUTHENTICATION_REQUIRED = "AUTHENTICATION_REQUIRED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[DenyReason] = None


ALLOW = Decision(allowed=True)


def authorize(
    session: Optional[Session],
    required: RequiredRole,
    *,
    resource: str = "",
    client: ClientInfo = ClientInfo(),
) -> Decision:
    if session is None or not session.authenticated:
        log.warning(
            "Unauthenticated access attempt resource=%s ip=%s user_agent=%s",
            resource,
            client.ip,
            client.user_agent,
        )
        return Decision(allowed=False, reason=DenyReason.AUTHENTICATION_REQUIRED)

    if required is RequiredRole.COUPLE_ONLY and session.role is not Role.COUPLE:
        log.warning(
            "Insufficient permissions session_id=%s role=%s resource=%s",
            session.id,
            session.role.value,
            resource,
        )
        return Decision(allowed=False, reason=DenyReason.INSUFFICIENT_PERMISSIONS)

    return ALLOW


def client_info(request: Request) -> ClientInfo:
    return ClientInfo(
        ip=request.client.host if request.client else "",
        user_agent=request.headers.get("user-agent", ""),
    )


def _resource(request: Request) -> str:
    return f"{request.method} {request.url.path}"


def current_session(request: Request) -> Optional[Session]:
    cached = getattr(request.state, "session", None)
    if cached is not None:
        return cached
    authority = request.app.state.authority
    token = request.cookies.get(request.app.state.settings.cookie_name, "")
    session = authority.load(token)
    request.state.session = session
    return session


def enforced_session(request: Request) -> Optional[Session]:
    """Current session after the visitor expiry check (raises ``VisitorExpired``)."""
    session = request.app.state.expiry.check(current_session(request))
    request.state.session = session
    return session


def _require(request: Request, required: RequiredRole) -> Session:
    session = enforced_session(request)
    decision = authorize(session, required, resource=_resource(request), client=client_info(request))
    if decision.reason is DenyReason.AUTHENTICATION_REQUIRED:
        raise AuthenticationRequired()
    if decision.reason is DenyReason.INSUFFICIENT_PERMISSIONS:
        raise InsufficientPermissions()
    if session is None:
        raise AuthenticationRequired()
    return session


def require_auth(request: Request) -> Session:
    return _require(request, RequiredRole.ANY_AUTHENTICATED)


def require_couple(request: Request) -> Session:
    return _require(request, RequiredRole.COUPLE_ONLY)


def cookie_settings(secure: bool) -> dict:
    return {"httponly": True, "samesite": "lax", "secure": secure}
