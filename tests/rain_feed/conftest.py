"""Shared fixtures for Rain feed tests."""

import random

import pytest

from rain_feed.db_engine import Database


@pytest.fixture
def db():
    """Create a temporary in-memory database for testing."""
    database = Database.in_memory()
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def file_db(tmp_path):
    """A file-backed database, for tests that use several connections."""
    database = Database.from_url(f"sqlite:///{tmp_path / 'rain_feed_test.db'}")
    database.init_db()
    yield database
    database.dispose()


@pytest.fixture
def rng():
    return random.Random(1234)
