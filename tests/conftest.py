from __future__ import annotations

import pytest
from sqlalchemy import create_engine

import reasigna.db as app_db
from reasigna.store import SqlDocumentStore


@pytest.fixture(autouse=True)
def isolated_state_file(tmp_path, monkeypatch):
    data_file = tmp_path / "data.json"
    monkeypatch.setenv("STORE_BACKEND", "json")
    monkeypatch.setenv("DATA_FILE", str(data_file))
    monkeypatch.setenv("SESSION_CODEC", "plain")
    monkeypatch.delenv("SESSION_SECRET", raising=False)
    return data_file


@pytest.fixture
def sql_store(tmp_path, monkeypatch):
    db_url = f"sqlite:///{tmp_path / 'test_state.db'}"
    monkeypatch.setenv("DATABASE_URL", db_url)

    # Rebind the module level session factory so every test gets its own SQLite file.
    engine = create_engine(db_url, connect_args={"check_same_thread": False}, pool_pre_ping=True)
    monkeypatch.setattr(app_db, "DATABASE_URL", db_url)
    monkeypatch.setattr(app_db, "engine", engine)
    monkeypatch.setattr(app_db, "SessionLocal", app_db.make_session_factory(engine))

    app_db.init_db(engine)
    yield SqlDocumentStore(app_db.SessionLocal)
    app_db.Base.metadata.drop_all(bind=engine)
    engine.dispose()
