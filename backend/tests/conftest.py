"""Pytest configuration and fixtures."""
import sys
from pathlib import Path

import pytest

# Ensure backend root is on path when running pytest from repo root or backend
backend = Path(__file__).resolve().parent.parent
if str(backend) not in sys.path:
    sys.path.insert(0, str(backend))


@pytest.fixture(autouse=True)
def _clear_search_metrics():
    """Search metrics are process-wide; start every test from zero."""
    from src.monitoring import reset_metrics

    reset_metrics()
    yield
