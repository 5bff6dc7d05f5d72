"""Pytest fixtures for the sync engine tests."""

import pytest

from helpers import Seeded, make_seeded, make_settings
from tasksync.config import SyncSettings


@pytest.fixture
def seeded() -> Seeded:
    return make_seeded()


@pytest.fixture
def sync_settings() -> SyncSettings:
    return make_settings()
