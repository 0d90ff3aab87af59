# tests/conftest.py
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# --- make 'converter_service' importable from the repo root ---
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from converter_service.core.config import Settings
from converter_service.core.converter import ConversionError, ConversionResult
from converter_service.main import create_app

SECRET = "test-secret-with-enough-bytes-for-hs256"
SERVICE = "learnkata-backend"

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
PPT_MIME = "application/vnd.ms-powerpoint"

FAKE_PDF = b"%PDF-1.4\n% fake\n%%EOF\n"


class FakeConverter:
    """Stands in for LibreOffice; records every call."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    async def convert(self, data, fmt):
        self.calls.append((fmt.name, data))
        if self.fail:
            raise ConversionError(f"Failed to convert {fmt.label} to PDF: soffice exited with 1")
        return ConversionResult(pdf=FAKE_PDF, input_size_mb="0.00", output_size_mb="0.00", duration_ms=12)


def make_settings(**overrides) -> Settings:
    values = {
        "JWT_SECRET": SECRET,
        "EXPECTED_SERVICE": SERVICE,
        "ENVIRONMENT": "production",
        "ALLOWED_ORIGINS": "",
        "MAX_UPLOAD_MB": 5,
    }
    values.update(overrides)
    # no .env: tests never depend on the local environment
    return Settings(_env_file=None, **values)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fake_converter():
    return FakeConverter()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def client(settings, fake_converter):
    app = create_app(settings, converter=fake_converter)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def dev_client(fake_converter):
    app = create_app(make_settings(ENVIRONMENT="development"), converter=fake_converter)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def token(client):
    return client.app.state.auth_gate.issue()
