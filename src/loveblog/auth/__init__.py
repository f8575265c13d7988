# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Authentication core.

This package provides:
- Password hashing/verification, strength checks and random passwords (argon2)
- Server-side sessions behind signed, timed cookies (itsdangerous)
- The lazy visitor expiry check
"""
