# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Password manager for operators.

Usage:
  loveblog-passwords set-couple <password>
  loveblog-passwords set-visitor <password> [hours]
  loveblog-passwords generate-key
  loveblog-passwords status
  loveblog-passwords test-couple <password>
  loveblog-passwords test-visitor <password>
  loveblog-passwords setup
"""

from __future__ import annotations

import argparse
from getpass import getpass
from typing import Callable, List, Optional

from loveblog.auth.roles import Role
from loveblog.config import Settings, load_settings
from loveblog.errors import ValidationError
from loveblog.infra.credential_store import CredentialStore
from loveblog.infra.db import init_db
from loveblog.infra.settings_repo import SettingsRepo
from loveblog.services.password_service import DEFAULT_EXPIRY_HOURS, PasswordService


def build_service(settings: Settings) -> PasswordService:
    init_db(settings.db_path)
    return PasswordService(CredentialStore(SettingsRepo(settings.db_path)))


def _report_invalid(exc: ValidationError) -> None:
    print(f"ERROR: {exc.message}")
    for d in exc.details:
        print(f"  - {d}")


def cmd_set_couple(svc: PasswordService, password: str) -> bool:
    try:
        svc.set_couple(password)
    except ValidationError as exc:
        _report_invalid(exc)
        return False
    print("OK -> contraseña de pareja configurada")
    return True


def cmd_set_visitor(svc: PasswordService, password: str, hours: int) -> bool:
    try:
        issue = svc.set_visitor(password, hours)
    except ValidationError as exc:
        _report_invalid(exc)
        return False
    print("OK -> contraseña de visitante configurada")
    print(f"   Caduca: {issue.expires_at.isoformat()}")
    print(f"   Validez: {issue.expiry_hours} horas")
    return True


def cmd_generate_key(svc: PasswordService) -> bool:
    key = svc.regenerate_encryption_key()
    print("OK -> clave de cifrado generada")
    print(f"   Huella: {key[:8]}...")
    return True


def cmd_status(svc: PasswordService) -> bool:
    st = svc.status()
    couple, visitor, key = st["couplePassword"], st["visitorPassword"], st["encryptionKey"]

    print("\n=== Estado de contraseñas ===")
    if couple["isSet"]:
        print(f"[x] Pareja: configurada (actualizada {couple['updatedAt']})")
    else:
        print("[ ] Pareja: sin configurar")

    if visitor["isSet"]:
        print(f"[x] Visitante: configurada (actualizada {visitor['updatedAt']})")
        if visitor["expiresAt"]:
            print(f"    Caduca: {visitor['expiresAt']}")
            if visitor["isExpired"]:
                print("    Estado: caducada")
            else:
                print(f"    Estado: válida, quedan {visitor['hoursLeft']} horas")
    else:
        print("[ ] Visitante: sin configurar")

    if key["isSet"]:
        print(f"[x] Clave de cifrado: {key['fingerprint']}... (generada {key['updatedAt']})")
    else:
        print("[ ] Clave de cifrado: sin generar")
    print()
    return True


def cmd_test(svc: PasswordService, role: Role, password: str) -> bool:
    ok = svc.check_password(role, password)
    print(f"{'OK' if ok else 'FALLO'} -> verificación de contraseña de {role.value}")
    return ok


def cmd_setup(
    svc: PasswordService,
    *,
    ask: Callable[[str], str] = input,
    ask_secret: Callable[[str], str] = getpass,
) -> bool:
    print("\n=== Asistente de configuración ===\n")
    ok = True

    couple = ask_secret("Contraseña de pareja: ")
    if couple:
        ok = cmd_set_couple(svc, couple) and ok

    visitor = ask_secret("Contraseña de visitante: ")
    if visitor:
        raw = ask(f"Validez en horas [{DEFAULT_EXPIRY_HOURS}]: ").strip()
        hours = int(raw) if raw.isdigit() else DEFAULT_EXPIRY_HOURS
        ok = cmd_set_visitor(svc, visitor, hours) and ok

    if ask("¿Generar nueva clave de cifrado? [y/N]: ").strip().lower() in {"y", "yes", "s", "si"}:
        cmd_generate_key(svc)

    cmd_status(svc)
    return ok


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="loveblog-passwords", description="Gestión de contraseñas del blog")
    sub = ap.add_subparsers(dest="command", required=True)

    p = sub.add_parser("set-couple", help="configurar la contraseña de pareja")
    p.add_argument("password")

    p = sub.add_parser("set-visitor", help="configurar la contraseña de visitante")
    p.add_argument("password")
    p.add_argument("hours", nargs="?", type=int, default=DEFAULT_EXPIRY_HOURS)

    sub.add_parser("generate-key", help="generar la clave de cifrado")
    sub.add_parser("status", help="ver el estado de las contraseñas")

    p = sub.add_parser("test-couple", help="probar la contraseña de pareja")
    p.add_argument("password")

    p = sub.add_parser("test-visitor", help="probar la contraseña de visitante")
    p.add_argument("password")

    sub.add_parser("setup", help="asistente interactivo")
    return ap


def main(argv: Optional[List[str]] = None, *, settings: Optional[Settings] = None) -> int:
    args = build_parser().parse_args(argv)
    svc = build_service(settings or load_settings())

    if args.command == "set-couple":
        ok = cmd_set_couple(svc, args.password)
    elif args.command == "set-visitor":
        ok = cmd_set_visitor(svc, args.password, args.hours)
    elif args.command == "generate-key":
        ok = cmd_generate_key(svc)
    elif args.command == "status":
        ok = cmd_status(svc)
    elif args.command == "test-couple":
        ok = cmd_test(svc, Role.COUPLE, args.password)
    elif args.command == "test-visitor":
        ok = cmd_test(svc, Role.VISITOR, args.password)
    else:
        ok = cmd_setup(svc)
    return 0 if ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
