"""
Pytest configuration file.

Ensures the repo root is on sys.path so that 'import src...' and
'import actions...' work, and provides the shared frozen publish clock.
"""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add the repo root to sys.path
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from src.utils.time import FrozenClock  # noqa: E402


@pytest.fixture
def frozen_clock():
    """Publish-time clock frozen at 2024-01-01T00:00:00Z (1704067200000000000 ns)."""
    return FrozenClock(datetime(2024, 1, 1, tzinfo=timezone.utc))
