from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

import clubpay.models  # noqa: F401
from clubpay.core.deps import get_compensation_store, get_session_factory
from clubpay.db.base import Base
from clubpay.db.session import get_db
from clubpay.main import app
from clubpay.services.data_sources import SqlCompensationStore


@pytest.fixture()
def session_factory(tmp_path):
    # File-backed: the store runs its queries in worker threads.
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'clubpay.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=Session, future=True)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_compensation_store] = lambda: SqlCompensationStore(session_factory, max_concurrency=2)

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
