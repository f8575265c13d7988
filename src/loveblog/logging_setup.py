# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os

_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def setup_logging(level: str = "INFO", log_path: str = "") -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    # Idempotent: the app factory may run more than once per process (tests, reload).
    for h in list(root.handlers):
        if getattr(h, "_loveblog", False):
            root.removeHandler(h)
            h.close()

    fmt = logging.Formatter(_FORMAT)

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    ch._loveblog = True
    root.addHandler(ch)

    if log_path:
        log_dir = os.path.dirname(log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        fh = logging.FileHandler(log_path)
        fh.setFormatter(fmt)
        fh._loveblog = True
        root.addHandler(fh)
