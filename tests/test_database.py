"""
Tests for database helpers and settings.
"""

import pytest
from sqlalchemy import text
from sqlmodel import select

from choirhub.config import Settings
from choirhub.database import get_engine, session_scope
from choirhub.models import Choir


def test_session_scope_commits(engine):
    with session_scope(engine) as db:
        db.add(Choir(id="s1", name="Scoped"))

    with session_scope(engine) as db:
        assert db.get(Choir, "s1") is not None


def test_session_scope_rolls_back_on_error(engine):
    with pytest.raises(RuntimeError):
        with session_scope(engine) as db:
            db.add(Choir(id="s2", name="Doomed"))
            db.flush()
            raise RuntimeError("boom")

    with session_scope(engine) as db:
        assert db.exec(select(Choir).where(Choir.id == "s2")).first() is None


class TestSettings:
    def test_database_url_wins(self):
        s = Settings(DATABASE_URL="postgresql://u@h/db", DB_PATH="./x.sqlite")
        assert s.resolved_database_url == "postgresql://u@h/db"

    def test_relative_db_path(self):
        s = Settings(DATABASE_URL="", DB_PATH="data/choir.sqlite")
        assert s.resolved_database_url == "sqlite:///./data/choir.sqlite"

    def test_absolute_db_path(self):
        s = Settings(DATABASE_URL="", DB_PATH="/var/lib/choir.sqlite")
        assert s.resolved_database_url == "sqlite:////var/lib/choir.sqlite"

    def test_normalizers(self):
        s = Settings(LOG_LEVEL=" debug ", HOST="  ")
        assert s.log_level == "DEBUG"
        assert s.host == "127.0.0.1"

    def test_targeting_policy_defaults(self, monkeypatch):
        monkeypatch.delenv("STRICT_TARGETING", raising=False)
        monkeypatch.delenv("FREEZE_RESPONSES_AFTER_MARKING", raising=False)
        s = Settings(_env_file=None)
        assert s.strict_targeting is False
        assert s.freeze_responses_after_marking is True

    def test_cors_origins(self):
        s = Settings(CORS_ALLOW_ORIGINS="https://a.example, https://b.example,")
        assert s.cors_origins == ["https://a.example", "https://b.example"]
        assert Settings(CORS_ALLOW_ORIGINS=" ").cors_origins == ["*"]


def test_file_engine_creates_folder_and_enforces_foreign_keys(tmp_path):
    db_file = tmp_path / "nested" / "choir.sqlite"
    engine = get_engine(f"sqlite:///{db_file.as_posix()}")
    try:
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        assert db_file.parent.is_dir()
    finally:
        engine.dispose()
