from marketplace.core.config import settings
import run


def test_defaults_outside_production(monkeypatch):
    monkeypatch.delenv("HOST", raising=False)
    monkeypatch.delenv("PORT", raising=False)
    monkeypatch.setattr(settings, "environment", "test")
    monkeypatch.setattr(settings, "log_level", "INFO")

    assert run.server_options() == {"host": "0.0.0.0", "port": 8000, "reload": True, "log_level": "info"}


def test_production_binds_from_env_without_reload(monkeypatch):
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setattr(settings, "environment", "production")

    options = run.server_options()

    assert options["reload"] is False
    assert (options["host"], options["port"]) == ("127.0.0.1", 9100)
