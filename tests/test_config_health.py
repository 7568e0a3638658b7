# tests/test_config_health.py
import pytest

from core.config import DEFAULT_MAX_CASCADE_DEPTH, Settings
from core.dispatcher import SyncEngine
from core.errors import ConfigurationError
from core.health import system_health
from syncs.catalog import build_sync_rules


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("SYNC_MAX_CASCADE_DEPTH", "12")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    settings = Settings.from_env()
    assert settings.database_url == "sqlite://"
    assert settings.max_cascade_depth == 12
    assert settings.log_level == "DEBUG"
    assert settings.audit_enabled


def test_settings_defaults(monkeypatch):
    for name in ("SYNC_MAX_CASCADE_DEPTH", "SUPABASE_URL", "SUPABASE_ANON_KEY"):
        monkeypatch.delenv(name, raising=False)
    settings = Settings.from_env()
    assert settings.max_cascade_depth == DEFAULT_MAX_CASCADE_DEPTH
    assert not settings.audit_enabled
    assert settings.with_overrides(max_cascade_depth=3).max_cascade_depth == 3


@pytest.mark.parametrize("raw", ["many", "0"])
def test_bad_integer_settings_rejected(monkeypatch, raw):
    monkeypatch.setenv("SYNC_MAX_CASCADE_DEPTH", raw)
    with pytest.raises(ConfigurationError):
        Settings.from_env()


def test_engine_from_settings(registry):
    engine = SyncEngine.from_settings(registry, build_sync_rules(), Settings(max_cascade_depth=9, dispatch_memory=16))
    assert engine.max_depth == 9
    assert engine.dispatch_memory == 16


def test_health_report(db_engine, engine):
    report = system_health(db_engine=db_engine, sync_engine=engine)
    assert report["status"] == "ok"
    assert report["database_connected"] is True
    assert report["sync"]["rules"] == len(engine.rules)
    assert report["uptime_sec"] >= 0


def test_health_without_collaborators():
    report = system_health()
    assert report["database_connected"] is None
    assert report["sync"] is None
