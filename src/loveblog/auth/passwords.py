# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from typing import List

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from loveblog.errors import EmptyInput

MIN_LENGTH = 6
MAX_LENGTH = 100

RANDOM_CHARSET = "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789!@#$%^&*"

# Fixed work factor, roughly the wall-clock cost of bcrypt with 12 rounds.
_PH = PasswordHasher(time_cost=4, memory_cost=64 * 1024, parallelism=2)


@dataclass(frozen=True)
class StrengthResult:
    valid: bool
    errors: List[str] = field(default_factory=list)


def hash_password(plain: str) -> str:
    if not plain:
        raise EmptyInput("Contraseña vacía")
    return _PH.hash(plain)


def verify_password(plain: str, hash_value: str) -> bool:
    if not hash_value or not plain:
        return False
    try:
        return _PH.verify(hash_value, plain)
    except (VerificationError, InvalidHashError):
        return False


def validate_strength(plain: str) -> StrengthResult:
    if not plain:
        return StrengthResult(valid=False, errors=["La contraseña no puede estar vacía"])

    errors: List[str] = []
    if len(plain) < MIN_LENGTH:
        errors.append(f"La contraseña debe tener al menos {MIN_LENGTH} caracteres")
    if len(plain) > MAX_LENGTH:
        errors.append(f"La contraseña no puede superar los {MAX_LENGTH} caracteres")
    return StrengthResult(valid=not errors, errors=errors)


def generate_random_password(length: int = 12) -> str:
    return "".join(secrets.choice(RANDOM_CHARSET) for _ in range(length))


def generate_encryption_key() -> str:
    return secrets.token_hex(32)
