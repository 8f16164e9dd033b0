import os
from datetime import datetime

import pytest

from book_tracker.database import BookStore
from book_tracker.library import Library
from book_tracker.utils.ui_helpers import OUTPUT_MODE_ENV

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0)


@pytest.fixture(autouse=True)
def plain_output(monkeypatch):
    # The CLI stores the output mode in the environment; restore it after every test
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


@pytest.fixture
def db_file(tmp_path, request):
    # A unique database file for every test
    return str(tmp_path / f"test_{request.node.name}.db")


@pytest.fixture
def store(db_file):
    return BookStore(db_file)


@pytest.fixture
def lib(store):
    lib = Library(store, clock=lambda: FIXED_NOW)
    yield lib
    if os.path.exists(store.db_file):
        os.remove(store.db_file)
