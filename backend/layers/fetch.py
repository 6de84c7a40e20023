from __future__ import annotations

import os

import requests
from loguru import logger


def fetch_timeout_s() -> float:
    raw = (os.getenv("POINTMAP_FETCH_TIMEOUT_S") or "").strip()
    try:
        return float(raw) if raw else 30.0
    except ValueError:
        return 30.0


def fetch_text(
    url: str,
    *,
    headers: dict[str, str] | None = None,
    timeout_s: float | None = None,
) -> str:
    """
    GET a dataset and return its body as text. HTTP errors are raised.
    """
    timeout = fetch_timeout_s() if timeout_s is None else timeout_s
    logger.debug(f"Fetching {url}")
    resp = requests.get(url, headers=headers or {}, timeout=timeout)
    resp.raise_for_status()
    return resp.text
