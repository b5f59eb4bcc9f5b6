import os

# Keep the module-level engine in main.py off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORE_PROVIDER", "memory")

from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from store import MemoryRecordStore


@pytest.fixture
def ist() -> ZoneInfo:
    return ZoneInfo("Asia/Kolkata")


@pytest.fixture
def clock(ist):
    """Fixed 'now' on 18 Jan 2026, 10:00 IST."""
    return lambda: datetime(2026, 1, 18, 10, 0, tzinfo=ist)


@pytest.fixture
def memory_store() -> MemoryRecordStore:
    return MemoryRecordStore()
