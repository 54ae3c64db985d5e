"""
Pytest configuration file for CottonLog tests.

This file sets up the Python path so tests can import the modules in 'src',
and provides the shared fixtures used across the test modules.
"""

import os
import sys
import shutil
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

# Headless Qt for signal tests (pytest-qt creates the QApplication)
os.environ.setdefault('QT_QPA_PLATFORM', 'offscreen')

# Get the repository root directory (parent of tests directory)
repo_root = Path(__file__).parent.parent

# Add src directory to sys.path (for src modules)
src_dir = repo_root / 'src'
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from session_store import JsonSessionStore  # noqa: E402
from workflow_engine import WorkflowEngine  # noqa: E402


class FakeClock:
    """Deterministic clock: every call returns a moment one second later."""

    def __init__(self, start: datetime = datetime(2026, 10, 19, 8, 0, 0)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(seconds=1)
        return self.current


@pytest.fixture
def test_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def store(test_dir):
    """JSON session store in a temporary directory."""
    return JsonSessionStore(test_dir / "sessions")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(store, clock):
    """WorkflowEngine with default policies and a deterministic clock."""
    return WorkflowEngine(store, clock=clock)


@pytest.fixture
def inventory_rows():
    """Rows as produced by table_io.read_rows for a small HVI sheet."""
    return [
        {'Bale Tag': 'BL-1001', 'Mic': '4.2', 'Strength': '29.5', 'Grade': '31-1'},
        {'Bale Tag': 'BL-1002', 'Mic': '4.8', 'Strength': '30.1', 'Grade': '31-2'},
        {'Bale Tag': 'BL-2001', 'Mic': '4.2', 'Strength': None, 'Grade': '41-1'},
        {'Bale Tag': 'Z', 'Mic': '3.9', 'Strength': '28.0', 'Grade': '31-1'},
    ]


@pytest.fixture
def inventory_session(engine, inventory_rows):
    return engine.create_inventory_session(
        inventory_rows, 'Bale Tag', ['Mic', 'Strength'], lot='L7', start_number=1
    )
