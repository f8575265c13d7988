# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""loveblog: couple/visitor authentication backend for a personal blog."""

__version__ = "1.0.0"
