import pytest

from app.starter import create_app
from app.starter.config import load_config, load_settings


def test_defaults(monkeypatch):
    for k in ("SECRET_KEY", "ENV", "DATABASE_URL", "LANGUAGE", "SESSION_LIFETIME_HOURS", "RECOVERY_TOKEN_LIFETIME_MINUTES"):
        monkeypatch.delenv(k, raising=False)
    s = load_settings()
    assert s.database_url == "sqlite:///starter.db"
    assert s.session_lifetime_hours == 8
    assert s.recovery_token_lifetime_minutes == 30
    assert load_config()["SESSION_COOKIE_SECURE"] is False


def test_bad_integer_fails_fast(monkeypatch):
    monkeypatch.setenv("SESSION_LIFETIME_HOURS", "eight")
    with pytest.raises(RuntimeError):
        load_settings()


def test_production_refuses_sqlite(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "strong-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "production")
    with pytest.raises(RuntimeError, match="Postgres"):
        create_app()


def test_session_lifetime_comes_from_config(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("SESSION_LIFETIME_HOURS", "2")
    app = create_app()
    assert app.config["PERMANENT_SESSION_LIFETIME"].total_seconds() == 2 * 3600
