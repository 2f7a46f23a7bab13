"""
pytest configuration and fixtures.
"""

import os
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from wheels import Database

from support import NOTES_TABLE, build_app, write_views


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """SQLite engine on a temporary file with the notes table."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'wheels.db'}",
        poolclass=NullPool,
        isolation_level="AUTOCOMMIT",
    )
    with engine.connect() as connection:
        connection.exec_driver_sql(NOTES_TABLE)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Database, None, None]:
    with Database(engine) as database:
        yield database


@pytest.fixture
def other_db(engine) -> Generator[Database, None, None]:
    """A second handle, as another request would have."""
    with Database(engine) as database:
        yield database


@pytest.fixture
def root_dir(tmp_path):
    """Application root with a views folder beside it."""
    public = tmp_path / "public"
    public.mkdir()
    write_views(tmp_path / "views")
    return public


@pytest.fixture
def client(root_dir, engine) -> Generator[TestClient, None, None]:
    with TestClient(build_app(root_dir, engine)) as test_client:
        yield test_client


@pytest.fixture
def clean_env():
    """Forget variables a test loads into the process environment."""
    names = []
    yield names
    for name in names:
        os.environ.pop(name, None)
