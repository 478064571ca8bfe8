import random
import pytest

from trana.db import Store
from trana.decks import create_deck


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    db_path = str(tmp_path / "test_trana.db")
    return db_path


@pytest.fixture
def store(tmp_db):
    s = Store(tmp_db)
    yield s
    s.close()


@pytest.fixture
def deck(store):
    return create_deck(store, "Spanish")


@pytest.fixture
def rng():
    return random.Random(1234)
