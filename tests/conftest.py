import os

# keep the import-time engine off the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import factories
from app import app
from db import get_session
from models import Base


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'test.db'}", connect_args={"check_same_thread": False})
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    Session = sessionmaker(engine, expire_on_commit=False)
    with Session() as s:
        factories.UserFactory._meta.sqlalchemy_session = s
        factories.PostFactory._meta.sqlalchemy_session = s
        yield s


@pytest.fixture
def client(engine):
    Session = sessionmaker(engine, expire_on_commit=False)

    def override_get_session():
        with Session() as s:
            yield s

    app.dependency_overrides[get_session] = override_get_session
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
