# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from loveblog import __version__
from loveblog.auth.expiry import VisitorExpiryEnforcer
from loveblog.auth.roles import Role
from loveblog.auth.session import Session, SessionAuthority, SessionStore
from loveblog.config import Settings, load_settings
from loveblog.core.timeutil import Clock, to_iso, utcnow
from loveblog.errors import AppError, InternalFault, NotFound, ValidationError, VisitorExpired
from loveblog.infra.credential_store import CredentialStore
from loveblog.infra.db import init_db
from loveblog.infra.settings_repo import SettingsRepo
from loveblog.logging_setup import setup_logging
from loveblog.permissions import (
    client_info,
    cookie_settings,
    current_session,
    enforced_session,
    require_auth,
    require_couple,
)
from loveblog.services.password_service import (
    DEFAULT_EXPIRY_HOURS,
    DEFAULT_GENERATED_LENGTH,
    HISTORY_LIMIT,
    PasswordService,
)
from loveblog.services.settings_service import SettingsService

log = logging.getLogger(__name__)



# ------------------ Request bodies ------------------


class LoginBody(BaseModel):
    password: str = ""


class CouplePasswordBody(BaseModel):
    currentPassword: str = ""
    newPassword: str = ""


class VisitorPasswordBody(BaseModel):
    password: str = ""
    expiryHours: int = DEFAULT_EXPIRY_HOURS


class VisitorGenerateBody(BaseModel):
    expiryHours: int = DEFAULT_EXPIRY_HOURS
    length: int = DEFAULT_GENERATED_LENGTH


class SettingsBody(BaseModel):
    settings: Optional[Dict[str, Any]] = None


def _iso(dt) -> Optional[str]:
    return to_iso(dt) if dt else None


def _state(request: Request):
    return request.app.state


# ------------------ Auth routes ------------------

auth_router = APIRouter(prefix="/auth")


@auth_router.post("/login")
def login(body: LoginBody, request: Request):
    st = _state(request)
    previous = current_session(request)
    session = st.authority.login(body.password, client_info(request))
    if previous is not None:
        st.authority.logout(previous.id)

    label = "pareja" if session.role is Role.COUPLE else "visitante"
    resp = JSONResponse(
        {
            "success": True,
            "user": {"type": session.role.value},
            "message": f"Inicio de sesión de {label} correcto",
            "expiryTime": _iso(session.expires_at),
        }
    )
    resp.set_cookie(
        st.settings.cookie_name,
        st.authority.issue_token(session),
        max_age=st.settings.session_max_age,
        **cookie_settings(st.settings.cookie_secure),
    )
    return resp


@auth_router.get("/status")
def auth_status(session: Optional[Session] = Depends(enforced_session)):
    projection = SessionAuthority.status(session)
    if not projection["authenticated"]:
        return {"success": False, "authenticated": False}
    return {
        "success": True,
        "authenticated": True,
        "user": {"type": projection["role"].value},
        "loginTime": _iso(projection["login_time"]),
        "expiryTime": _iso(projection["expires_at"]),
    }


@auth_router.post("/logout")
def logout(request: Request):
    st = _state(request)
    session = current_session(request)
    st.authority.logout(session.id if session else None)
    log.info("Logout role=%s ip=%s", session.role.value if session else "unknown", client_info(request).ip)

    resp = JSONResponse({"success": True, "message": "Sesión cerrada"})
    resp.delete_cookie(st.settings.cookie_name)
    return resp


# ------------------ Password routes (couple only) ------------------

password_router = APIRouter(prefix="/password", dependencies=[Depends(require_couple)])


@password_router.get("/status")
def password_status(request: Request):
    return {"success": True, "status": _state(request).passwords.status()}


@password_router.put("/couple")
def change_couple_password(body: CouplePasswordBody, request: Request):
    _state(request).passwords.change_couple(body.currentPassword, body.newPassword)
    return {"success": True, "message": "Contraseña de pareja actualizada"}


@password_router.put("/visitor")
def set_visitor_password(body: VisitorPasswordBody, request: Request):
    issue = _state(request).passwords.set_visitor(body.password, body.expiryHours)
    return {
        "success": True,
        "message": "Contraseña de visitante configurada",
        "expiresAt": to_iso(issue.expires_at),
        "expiryHours": issue.expiry_hours,
    }


@password_router.post("/visitor/generate")
def generate_visitor_password(body: VisitorGenerateBody, request: Request):
    issue = _state(request).passwords.generate_visitor(body.expiryHours, body.length)
    return {
        "success": True,
        "message": "Contraseña de visitante generada",
        # Only time the plaintext leaves the server.
        "password": issue.password,
        "expiresAt": to_iso(issue.expires_at),
        "expiryHours": issue.expiry_hours,
    }


@password_router.delete("/visitor")
def revoke_visitor_password(request: Request):
    _state(request).passwords.revoke_visitor()
    return {"success": True, "message": "Contraseña de visitante revocada"}


@password_router.get("/history")
def password_history(request: Request):
    return {"success": True, "history": _state(request).passwords.history(HISTORY_LIMIT)}


# ------------------ Blog settings ------------------

settings_router = APIRouter(prefix="/settings")


@settings_router.get("")
def get_settings(request: Request, session: Session = Depends(require_auth)):
    values = _state(request).blog_settings.visible_settings(session.role)
    return {"success": True, "settings": values, "userType": session.role.value}


@settings_router.put("", dependencies=[Depends(require_couple)])
def update_settings(body: SettingsBody, request: Request):
    if body.settings is None:
        raise ValidationError("El formato de los ajustes no es correcto")
    count = _state(request).blog_settings.update(body.settings)
    return {"success": True, "message": "Ajustes actualizados", "updatedCount": count}


# ------------------ Error handling ------------------


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(request: Request, exc: AppError):
        resp = JSONResponse(exc.to_dict(), status_code=exc.status_code)
        if isinstance(exc, VisitorExpired):
            resp.delete_cookie(request.app.state.settings.cookie_name)
        return resp

    @app.exception_handler(RequestValidationError)
    async def _request_validation(request: Request, exc: RequestValidationError):
        details = []
        for e in exc.errors():
            loc = ".".join(str(p) for p in e.get("loc", ()) if p != "body")
            details.append(f"{loc}: {e.get('msg', '')}" if loc else str(e.get("msg", "")))
        err = ValidationError(details=details)
        return JSONResponse(err.to_dict(), status_code=err.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            log.warning("404 Not Found: %s", request.url.path)
            err = NotFound()
            return JSONResponse(err.to_dict(), status_code=404)
        return JSONResponse({"success": False, "error": str(exc.detail)}, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        log.exception("Unhandled error on %s %s", request.method, request.url.path)
        err = InternalFault()
        return JSONResponse(err.to_dict(), status_code=err.status_code)


# ------------------ Factory ------------------


def create_app(settings: Optional[Settings] = None, *, clock: Clock = utcnow) -> FastAPI:
    settings = settings or load_settings()
    setup_logging(settings.log_level, settings.log_path)
    init_db(settings.db_path)

    repo = SettingsRepo(settings.db_path)
    credentials = CredentialStore(repo, clock)
    sessions = SessionStore(settings.db_path, max_age=settings.session_max_age, clock=clock)
    purged = sessions.purge_stale()
    if purged:
        log.info("Purged %s stale sessions", purged)

    app = FastAPI(title="loveblog", version=__version__)
    app.state.settings = settings
    app.state.authority = SessionAuthority(
        credentials,
        sessions,
        secret_key=settings.secret_key,
        salt=settings.session_salt,
        clock=clock,
    )
    app.state.expiry = VisitorExpiryEnforcer(
        credentials,
        sessions,
        source=settings.visitor_expiry_source,
        clock=clock,
    )
    app.state.passwords = PasswordService(credentials, clock, sessions)
    app.state.blog_settings = SettingsService(repo, clock)

    @app.middleware("http")
    async def _request_log(request: Request, call_next):
        info = client_info(request)
        log.info("%s %s ip=%s user_agent=%s", request.method, request.url.path, info.ip, info.user_agent)
        return await call_next(request)

    _install_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(password_router)
    app.include_router(settings_router)

    @app.get("/health")
    def health():
        return {"status": "ok", "timestamp": to_iso(clock())}

    @app.get("/")
    def root():
        return {
            "message": "API",
            "version": __version__,
            "endpoints": ["/auth/*", "/password/*", "/settings", "/health"],
        }

    log.info("loveblog started db=%s expiry_source=%s", settings.db_path, settings.visitor_expiry_source)
    return app
