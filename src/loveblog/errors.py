# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the core and the HTTP layer.

Every error carries the HTTP status and a stable machine-readable code so the
route handlers never have to translate exceptions themselves.
"""

from __future__ import annotations

from typing import List, Optional


class EmptyInput(ValueError):
    """Raised when a secret to hash is empty."""


class AppError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Error interno del servidor"

    def __init__(self, message: Optional[str] = None, *, details: Optional[List[str]] = None) -> None:
        self.message = message or self.default_message
        self.details = list(details or [])
        super().__init__(self.message)

    def to_dict(self) -> dict:
        out = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            out["details"] = self.details
        return out


class ValidationError(AppError):
    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Datos de entrada no válidos"


class AuthFailure(AppError):
    status_code = 401
    code = "INVALID_PASSWORD"
    default_message = "Contraseña incorrecta"


class AuthenticationRequired(AppError):
    status_code = 401
    code = "AUTHENTICATION_REQUIRED"
    default_message = "Se requiere autenticación"


class InsufficientPermissions(AppError):
    status_code = 403
    code = "INSUFFICIENT_PERMISSIONS"
    default_message = "Acceso no permitido"


class VisitorExpired(AppError):
    status_code = 401
    code = "VISITOR_EXPIRED"
    default_message = "El acceso de visitante ha caducado; pide una nueva invitación"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "No encontrado"


class InternalFault(AppError):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "Error interno del servidor"
