# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Runtime configuration.

Values come from environment variables (``LOVEBLOG_*``, optionally via a local
``.env``) layered over an optional YAML file whose path is given by
``LOVEBLOG_CONFIG``. Environment always wins over the file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

EXPIRY_SOURCES = ("store", "session")

_TRUTHY = {"1", "true", "yes", "y", "on"}
_FALSY = {"0", "false", "no", "n", "off"}


@dataclass(frozen=True)
class Settings:
    db_path: str = "data/love_blog.db"
    secret_key: str = ""
    session_salt: str = "loveblog.session.v1"
    cookie_name: str = "loveblog_session"
    session_max_age: int = 24 * 60 * 60
    cookie_secure: bool = False
    # "store" re-reads the visitor expiry on every request, "session" trusts the login snapshot.
    visitor_expiry_source: str = "store"
    log_level: str = "INFO"
    log_path: str = ""
    host: str = "0.0.0.0"
    port: int = 8812
    reload: bool = False


def _as_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    v = str(raw).strip().lower()
    if v in _TRUTHY:
        return True
    if v in _FALSY:
        return False
    raise ValueError(f"{name}: valor booleano no reconocido: {raw!r}")


def _coerce(name: str, default: Any, raw: Any) -> Any:
    if isinstance(default, bool):
        return _as_bool(name, raw)
    if isinstance(default, int):
        try:
            return int(raw)
        except (TypeError, ValueError):
            raise ValueError(f"{name}: se esperaba un entero, no {raw!r}") from None
    return str(raw)


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ValueError(f"No existe el fichero de configuración: {path}")
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"El fichero de configuración debe ser un mapa: {path}")
    return raw


def load_settings(env: Optional[Mapping[str, str]] = None, **overrides: Any) -> Settings:
    """Build :class:`Settings` from YAML file, environment and keyword overrides."""
    if env is None:
        load_dotenv()
        env = os.environ

    values: Dict[str, Any] = {}
    cfg_path = (env.get("LOVEBLOG_CONFIG") or "").strip()
    if cfg_path:
        values.update(_read_yaml(Path(cfg_path)))

    for f in fields(Settings):
        key = f"LOVEBLOG_{f.name.upper()}"
        if key in env:
            values[f.name] = env[key]
    values.update(overrides)

    known = {f.name: f.default for f in fields(Settings)}
    unknown = sorted(set(values) - set(known))
    if unknown:
        raise ValueError(f"Claves de configuración desconocidas: {', '.join(unknown)}")

    parsed = {name: _coerce(name, known[name], raw) for name, raw in values.items()}
    settings = Settings(**parsed)

    if settings.visitor_expiry_source not in EXPIRY_SOURCES:
        raise ValueError(
            f"visitor_expiry_source debe ser uno de {EXPIRY_SOURCES}, no {settings.visitor_expiry_source!r}"
        )
    if settings.session_max_age <= 0:
        raise ValueError("session_max_age debe ser positivo")
    return settings
