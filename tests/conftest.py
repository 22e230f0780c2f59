"""
pytest configuration for SDK tests.

Adds src directory to Python path for imports and keeps PHONEPE_* variables
from the developer's shell (or a test's .env file) out of other tests.
"""

import os
import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))


def _pop_phonepe_env() -> dict[str, str]:
    return {key: os.environ.pop(key) for key in list(os.environ) if key.startswith("PHONEPE_")}


@pytest.fixture(autouse=True)
def _isolate_phonepe_env():
    """Run each test without PHONEPE_* variables, then restore the originals."""
    saved = _pop_phonepe_env()
    yield
    _pop_phonepe_env()
    os.environ.update(saved)
