from __future__ import annotations

import os

_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def log_level() -> str:
    v = (os.getenv("POINTMAP_LOG_LEVEL") or "INFO").strip().upper()
    return v if v in _LEVELS else "INFO"


def log_json() -> bool:
    v = (os.getenv("POINTMAP_LOG_JSON") or "0").strip().lower()
    return v in {"1", "true", "yes", "on"}
