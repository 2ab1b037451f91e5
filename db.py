from sqlmodel import create_engine, Session
from sqlmodel import SQLModel
import threading

from config import DATABASE_URL

# SQLite needs check_same_thread=False; Postgres does not
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

# Application-level locks keyed by a simple name (e.g., ride-request:<rider id>)
locks = {}
locks_lock = threading.Lock()


def get_lock(name: str):
    with locks_lock:
        if name not in locks:
            locks[name] = threading.Lock()
        return locks[name]


engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)


def init_db():
    import models  # noqa: F401  registers the tables on SQLModel.metadata
    SQLModel.metadata.create_all(engine)


def get_session():
    # records leave the session as plain snapshots, so keep their loaded state
    return Session(engine, expire_on_commit=False)
