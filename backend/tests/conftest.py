import sys
from pathlib import Path

import pytest


# Ensure `backend/` is on sys.path so tests can import local modules
# like `layers.*`, `groups.*`, and `main`.
BACKEND_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(BACKEND_ROOT))


@pytest.fixture(autouse=True)
def _fresh_registry():
    from scenarios.registry import clear_registry_cache

    clear_registry_cache()
    yield
    clear_registry_cache()
