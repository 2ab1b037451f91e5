import os
import sys

import pytest
from sqlmodel import SQLModel, create_engine

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import db as db_mod  # noqa: E402
import models  # noqa: E402,F401
from lifecycle import LifecycleService  # noqa: E402
from store import RideRequestStore  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_db(tmp_path, monkeypatch):
    """Each test runs against a fresh database file."""
    test_db = f"sqlite:///{tmp_path}/test.db"
    new_engine = create_engine(test_db, echo=False, connect_args={"check_same_thread": False})
    monkeypatch.setattr(db_mod, "engine", new_engine)
    SQLModel.metadata.create_all(new_engine)
    yield new_engine
    SQLModel.metadata.drop_all(new_engine)
    new_engine.dispose()


@pytest.fixture
def store():
    s = RideRequestStore(timeout=2.0)
    yield s
    s.close()


@pytest.fixture
def service(store):
    return LifecycleService(store)


@pytest.fixture
def lenient_service(store):
    return LifecycleService(store, strict=False)
