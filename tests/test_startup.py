# tests/test_startup.py
import pytest
from fastapi.testclient import TestClient

from converter_service import main
from converter_service.core.config import Settings
from converter_service.core.converter import SofficeConverter
from converter_service.core.crypto import ConfigurationError

from conftest import make_settings


@pytest.mark.parametrize("secret", [None, ""])
def test_create_app_refuses_without_secret(secret):
    with pytest.raises(ConfigurationError):
        main.create_app(make_settings(JWT_SECRET=secret))


def test_run_exits_before_serving_without_secret(monkeypatch):
    served = []
    monkeypatch.setattr(main, "default_settings", make_settings(JWT_SECRET=None))
    monkeypatch.setattr(main, "configure_logging", lambda *a, **k: None)
    monkeypatch.setattr("uvicorn.run", lambda *a, **k: served.append(a))

    with pytest.raises(SystemExit) as ei:
        main.run()
    assert ei.value.code == 1
    assert served == []


def test_run_serves_when_configured(monkeypatch):
    served = []
    monkeypatch.setattr(main, "default_settings", make_settings(HOST="127.0.0.1", PORT=9999))
    monkeypatch.setattr(main, "configure_logging", lambda *a, **k: None)
    monkeypatch.setattr("uvicorn.run", lambda app, **k: served.append(k))

    main.run()
    assert served == [{"host": "127.0.0.1", "port": 9999, "log_config": None}]


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("JWT_SECRET", "from-env")
    monkeypatch.setenv("EXPECTED_SERVICE", "backend-q")
    monkeypatch.setenv("ALLOWED_ORIGINS", "https://a.example, https://b.example,")
    monkeypatch.setenv("MAX_UPLOAD_MB", "7")
    monkeypatch.delenv("ENVIRONMENT", raising=False)
    s = Settings(_env_file=None)
    assert s.jwt_secret == "from-env"
    assert s.expected_service == "backend-q"
    assert s.origins == ["https://a.example", "https://b.example"]
    assert s.max_upload_bytes == 7 * 1024 * 1024
    assert s.is_development is False


def test_default_converter_uses_settings():
    app = main.create_app(make_settings(SOFFICE_BIN="/opt/lo/soffice", CONVERSION_TIMEOUT_SEC=5))
    conv = app.state.converter
    assert isinstance(conv, SofficeConverter)
    assert conv._bin == "/opt/lo/soffice"
    assert conv._timeout == 5


def test_cors_restricted_to_allowed_origins(fake_converter):
    app = main.create_app(make_settings(ALLOWED_ORIGINS="https://app.example"), converter=fake_converter)
    with TestClient(app) as c:
        ok = c.get("/health", headers={"Origin": "https://app.example"})
        other = c.get("/health", headers={"Origin": "https://evil.example"})
    assert ok.headers["access-control-allow-origin"] == "https://app.example"
    assert ok.headers["access-control-allow-credentials"] == "true"
    assert "access-control-allow-origin" not in other.headers


def test_cors_open_when_unset(client):
    r = client.get("/health", headers={"Origin": "https://anything.example"})
    assert r.headers["access-control-allow-origin"] in ("*", "https://anything.example")


def test_create_app_refuses_asymmetric_algorithm():
    with pytest.raises(ConfigurationError, match="JWT_ALG"):
        main.create_app(make_settings(JWT_ALG="RS256"))
