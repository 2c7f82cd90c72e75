"""Tests for engine configuration."""

import os
from sqlalchemy import text
from sqlalchemy.pool import StaticPool
from creditquest.database import database_url, make_engine


def test_database_url_defaults_to_sqlite_file(monkeypatch, tmp_path):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    url = database_url(str(tmp_path))
    assert url == f"sqlite:///{os.path.join(str(tmp_path), 'creditquest.db')}"


def test_database_url_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", "postgresql://loans@db/creditquest")
    assert database_url(str(tmp_path)) == "postgresql://loans@db/creditquest"


def test_sqlite_file_engine_uses_wal(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    with engine.connect() as conn:
        mode = conn.execute(text("PRAGMA journal_mode")).scalar()
    assert mode.lower() == "wal"
    engine.dispose()


def test_memory_engine_shares_connection():
    engine = make_engine("sqlite:///:memory:", poolclass=StaticPool)
    with engine.connect() as conn:
        conn.execute(text("CREATE TABLE t (x INTEGER)"))
    with engine.connect() as conn:
        assert conn.execute(text("SELECT count(*) FROM t")).scalar() == 0
