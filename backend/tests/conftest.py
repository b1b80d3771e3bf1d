import os
import tempfile
from pathlib import Path

import pytest

# must be set before the application modules read their settings
_DB_DIR = Path(tempfile.mkdtemp(prefix="shopapi-tests-"))
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'test.db'}"
os.environ["INIT_DB"] = "true"
os.environ.setdefault("SQL_LOG", "true")

from sqlmodel import Session  # noqa: E402

from shopapi.database import create_db_and_tables, drop_db_and_tables, engine  # noqa: E402
from shopapi.utils.sample_data import init_db  # noqa: E402


@pytest.fixture(autouse=True)
def reset_db():
    """Recreate the schema and reseed the sample data before every test."""
    drop_db_and_tables()
    create_db_and_tables()
    with Session(engine) as session:
        init_db(session)
    yield


@pytest.fixture
def session():
    with Session(engine) as s:
        yield s
