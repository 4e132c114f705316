# ruff: noqa: E402
# File: /tests/conftest.py | Version: 2.0 | Title: Shared fixtures (isolated SQLite, TestClient, facade, engine schema)
import pathlib
import sys

# Make repo root importable as "docview"
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from docview.db.base_class import Base
from docview.engine.types import (
    Property,
    PropertyType,
    Record,
    Schema,
    SelectOption,
    ViewDefinition,
)
from docview.main import app

TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def _create_schema():
    import docview.models  # noqa: F401  (register tables on Base)

    Base.metadata.create_all(bind=engine)
    try:
        yield
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def db_session():
    connection = engine.connect()
    trans = connection.begin()
    try:
        session = TestingSessionLocal(bind=connection)
        yield session
    finally:
        session.close()
        trans.rollback()
        connection.close()


@pytest.fixture()
def client(db_session):
    from docview.db.session import get_db  # late import to avoid circulars

    def _override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def tasks_api(client):
    from docview.services.module_api import ModuleApiFacade

    return ModuleApiFacade("tasks", client)


# ---- Plain engine fixtures ----


@pytest.fixture()
def schema() -> Schema:
    return Schema(
        id="s1",
        name="Tasks",
        properties=[
            Property(id="title", name="Title", type=PropertyType.TEXT, required=True, order=0),
            Property(
                id="status",
                name="Status",
                type=PropertyType.SELECT,
                order=1,
                select_options=[
                    SelectOption(id="a", name="Todo"),
                    SelectOption(id="b", name="Done"),
                ],
            ),
            Property(id="priority", name="Priority", type=PropertyType.NUMBER, order=2),
            Property(id="due", name="Due", type=PropertyType.DATE, order=3),
            Property(id="done", name="Done", type=PropertyType.CHECKBOX, order=4),
            Property(
                id="labels",
                name="Labels",
                type=PropertyType.MULTI_SELECT,
                order=5,
                select_options=[
                    SelectOption(id="bug", name="Bug"),
                    SelectOption(id="feature", name="Feature"),
                ],
            ),
            Property(
                id="secret",
                name="Secret",
                type=PropertyType.TEXT,
                order=6,
                frozen=True,
                allow_hide=False,
                allow_delete=False,
                frozen_reason="Audit field",
            ),
        ],
        views=[ViewDefinition(id="all", name="All", is_default=True)],
    )


@pytest.fixture()
def records():
    return [
        Record(id="r1", properties={"title": "Write docs", "status": "b", "priority": 2, "done": True, "labels": ["feature"]}),
        Record(id="r2", properties={"title": "Fix login", "status": "a", "priority": 3, "due": "2026-03-01", "labels": ["bug"]}),
        Record(id="r3", properties={"title": "Add export", "status": "a", "priority": 2, "due": "2026-01-15"}),
        Record(id="r4", properties={"title": "Benchmark", "priority": None}),
    ]
