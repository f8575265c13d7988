#!/usr/bin/env python3
"""Operator password manager (same as the ``loveblog-passwords`` console script).

Usage:
  python scripts/password_manager.py status
"""
from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from loveblog.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
