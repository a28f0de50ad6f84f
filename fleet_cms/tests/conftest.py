import io
import uuid

import pytest
from PIL import Image

from fleet_cms import create_app

ADMIN_PASSWORD = "Admin-Test-Pass1!"


def build_test_app(tmp_path, monkeypatch, overrides=None):
    db_path = tmp_path / f"fleet_test_{uuid.uuid4().hex[:8]}.db"
    upload_path = tmp_path / f"uploads_{uuid.uuid4().hex[:8]}"

    monkeypatch.setenv("ADMIN_PASSWORD", ADMIN_PASSWORD)

    config = {
        "TESTING": True,
        "SECRET_KEY": "test-secret-key",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{db_path}",
        "SQLALCHEMY_ENGINE_OPTIONS": {},
        "UPLOAD_FOLDER": str(upload_path),
        "UPLOAD_URL_PREFIX": "/uploads",
        "PAGE_CACHE_SECONDS": 300,
        "SENTRY_DSN": "",
    }
    if overrides:
        config.update(overrides)
    return create_app(config)


def admin_login(client):
    csrf_token = client.get("/api/auth/csrf").get_json()["csrfToken"]
    assert csrf_token

    response = client.post(
        "/api/auth/login",
        json={"username": "admin", "password": ADMIN_PASSWORD},
        headers={"X-CSRF-Token": csrf_token},
    )
    assert response.status_code == 200
    return {"X-CSRF-Token": response.get_json()["csrfToken"]}


def image_file(name="cover.png", fmt="PNG", mimetype="image/png", size=(8, 6)):
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(180, 40, 40)).save(buffer, format=fmt)
    buffer.seek(0)
    return buffer, name, mimetype


@pytest.fixture()
def app(tmp_path, monkeypatch):
    return build_test_app(tmp_path, monkeypatch)


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def admin_headers(client):
    return admin_login(client)
