import json

from agenda_api.generate_openapi import generate_openapi
from agenda_api.settings import get_settings


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "PERSISTENCE_BACKEND",
            "SQLITE_DB_PATH",
            "AGENDA_STORAGE_KEY",
            "REMINDER_POLL_INTERVAL_SECONDS",
            "REMINDER_SCHEDULER_ENABLED",
            "CORS_ALLOW_ORIGINS",
            "LOG_LEVEL",
        ):
            monkeypatch.delenv(name, raising=False)
        s = get_settings()
        assert s.persistence_backend == "memory"
        assert s.sqlite_db_path == "./data/agenda.db"
        assert s.storage_key == "agenda_items"
        assert s.reminder_poll_interval_seconds == 60
        assert s.reminder_scheduler_enabled is True
        assert s.cors_allow_origins == ["*"]
        assert s.log_level == "INFO"

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "SQLite")
        monkeypatch.setenv("AGENDA_STORAGE_KEY", "agenda_demo")
        monkeypatch.setenv("REMINDER_POLL_INTERVAL_SECONDS", "15")
        monkeypatch.setenv("REMINDER_SCHEDULER_ENABLED", "off")
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://a.test, http://b.test")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        s = get_settings()
        assert s.persistence_backend == "sqlite"
        assert s.storage_key == "agenda_demo"
        assert s.reminder_poll_interval_seconds == 15
        assert s.reminder_scheduler_enabled is False
        assert s.cors_allow_origins == ["http://a.test", "http://b.test"]
        assert s.log_level == "DEBUG"

    def test_invalid_values_fall_back(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "postgres")
        monkeypatch.setenv("REMINDER_POLL_INTERVAL_SECONDS", "soon")
        s = get_settings()
        assert s.persistence_backend == "memory"
        assert s.reminder_poll_interval_seconds == 60
        monkeypatch.setenv("REMINDER_POLL_INTERVAL_SECONDS", "-5")
        assert get_settings().reminder_poll_interval_seconds == 60


class TestGenerateOpenAPI:
    def test_writes_schema(self, app, tmp_path):
        out = generate_openapi(str(tmp_path / "interfaces" / "openapi.json"), app)
        with open(out, encoding="utf-8") as f:
            schema = json.load(f)
        assert "/api/v1/agenda/items" in schema["paths"]
        assert "/api/v1/notifications/current" in schema["paths"]
        assert {"health", "agenda", "notifications"} <= {t["name"] for t in schema["tags"]}
