"""
Shared pytest fixtures for the layout backend tests.

The database URL is pointed at a throwaway SQLite file before any backend
module is imported, so the API tests never touch the development database.
"""

import os
import sys
import tempfile
from pathlib import Path

_TMP_DIR = tempfile.mkdtemp(prefix="layout-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{Path(_TMP_DIR) / 'test.db'}"
os.environ.setdefault("LOG_LEVEL", "WARNING")

# Ensure imports work from backend/
sys.path.insert(0, os.path.dirname(__file__))

import numpy as np
import pytest

from services.furniture_layout import Dimensions, Item, Room, load_rule_book


class ForbiddenRng:
    """Stands in for numpy's Generator and fails the test if the fallback draws."""

    def random(self, *args, **kwargs):
        raise AssertionError("random fallback used")


@pytest.fixture(scope="session")
def rule_book():
    return load_rule_book()


@pytest.fixture
def room():
    return Room(length=20, width=16, height=9)


@pytest.fixture
def forbidden_rng():
    return ForbiddenRng()


@pytest.fixture
def seeded_rng():
    return np.random.default_rng(7)


@pytest.fixture
def make_item():
    counter = {"n": 0}

    def _make(label, length=2.0, width=2.0, height=2.0, position=None, **kwargs):
        counter["n"] += 1
        return Item(
            id=kwargs.pop("id", f"{label.replace(' ', '-')}-{counter['n']}"),
            label=label,
            dimensions=Dimensions(length, width, height),
            position=position,
            **kwargs,
        )

    return _make
