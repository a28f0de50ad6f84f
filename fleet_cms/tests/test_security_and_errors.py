from fleet_cms import create_app
from fleet_cms.errors import StorageError
from fleet_cms.models import User
from fleet_cms.services import reviews as reviews_service

from conftest import admin_login, build_test_app


def test_health_endpoints_report_ok(client):
    health = client.get("/healthz")
    assert health.status_code == 200
    assert health.get_json() == {"status": "ok"}

    ready = client.get("/readyz")
    assert ready.status_code == 200
    assert ready.get_json()["checks"] == {"database": True, "admin_user_seeded": True}


def test_security_headers_and_request_id(client):
    response = client.get("/api/blog/featured", headers={"X-Request-ID": "req-12345678"})
    assert response.status_code == 200
    assert response.headers.get("X-Request-ID") == "req-12345678"
    assert response.headers.get("X-Content-Type-Options") == "nosniff"
    assert response.headers.get("X-Frame-Options") == "DENY"
    assert response.headers.get("Cache-Control") == "no-store"

    generated = client.get("/api/blog/featured", headers={"X-Request-ID": "bad id!"})
    assert generated.headers.get("X-Request-ID") != "bad id!"
    assert len(generated.headers.get("X-Request-ID")) == 32


def test_hsts_header_on_https_requests(client):
    response = client.get("/healthz", base_url="https://example.com")
    assert response.headers.get("Strict-Transport-Security") == "max-age=31536000; includeSubDomains"

    plain = client.get("/healthz")
    assert "Strict-Transport-Security" not in plain.headers


def test_hsts_header_on_trusted_forwarded_proto(tmp_path, monkeypatch):
    proxied_client = build_test_app(tmp_path, monkeypatch, {"TRUST_PROXY_HEADERS": True}).test_client()
    response = proxied_client.get("/healthz", base_url="http://example.com", headers={"X-Forwarded-Proto": "https"})
    assert response.status_code == 200
    assert response.headers.get("Strict-Transport-Security") == "max-age=31536000; includeSubDomains"


def test_forwarded_proto_ignored_without_proxy_trust(tmp_path, monkeypatch):
    direct_client = build_test_app(tmp_path, monkeypatch, {"TRUST_PROXY_HEADERS": False}).test_client()
    response = direct_client.get("/healthz", headers={"X-Forwarded-Proto": "https"})
    assert "Strict-Transport-Security" not in response.headers


def test_hsts_can_be_disabled(tmp_path, monkeypatch):
    app = build_test_app(tmp_path, monkeypatch, {"HSTS_ENABLED": False})
    response = app.test_client().get("/healthz", base_url="https://example.com")
    assert "Strict-Transport-Security" not in response.headers


def test_admin_routes_require_login(client):
    for path in ["/api/blog", "/api/reviews", "/api/vehicles", "/api/benefits", "/api/settings", "/api/auth/me"]:
        response = client.get(path)
        assert response.status_code == 401
        assert response.get_json() == {"error": "Authentication required."}


def test_mutations_require_csrf_token(client):
    admin_login(client)
    response = client.post("/api/reviews", json={"customerName": "Anna", "rating": 5, "comment": "Great"})
    assert response.status_code == 400
    assert "CSRF" in response.get_json()["error"]

    wrong = client.post(
        "/api/reviews",
        json={"customerName": "Anna", "rating": 5, "comment": "Great"},
        headers={"X-CSRF-Token": "not-the-token"},
    )
    assert wrong.status_code == 400


def test_login_rejects_bad_credentials(client):
    token = client.get("/api/auth/csrf").get_json()["csrfToken"]
    response = client.post(
        "/api/auth/login",
        json={"username": "admin", "password": "wrong"},
        headers={"X-CSRF-Token": token},
    )
    assert response.status_code == 401
    assert response.get_json() == {"error": "Invalid credentials."}

    unknown = client.post(
        "/api/auth/login",
        json={"username": "ghost", "password": "wrong"},
        headers={"X-CSRF-Token": token},
    )
    assert unknown.status_code == 401


def test_login_me_and_logout(client):
    headers = admin_login(client)
    me = client.get("/api/auth/me")
    assert me.status_code == 200
    assert me.get_json()["user"]["username"] == "admin"

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/auth/me").status_code == 401


def test_admin_password_rotates_with_env(tmp_path, monkeypatch):
    shared_db = {"SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'shared.db'}"}
    build_test_app(tmp_path, monkeypatch, shared_db)

    monkeypatch.setenv("ADMIN_PASSWORD", "Rotated-Pass-2!")
    second = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret-key",
            "SQLALCHEMY_ENGINE_OPTIONS": {},
            "UPLOAD_FOLDER": str(tmp_path / "uploads_rotated"),
            **shared_db,
        }
    )

    with second.app_context():
        admin = User.query.filter_by(username="admin").one()
        assert admin.check_password("Rotated-Pass-2!")


def test_non_json_body_is_a_validation_error(client, admin_headers):
    response = client.post("/api/vehicles", data="class=vip", headers=admin_headers)
    assert response.status_code == 400
    assert response.get_json() == {"error": "Request body must be a JSON object."}


def test_unknown_route_returns_json_404(client):
    response = client.get("/api/does-not-exist")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_unexpected_errors_map_to_generic_500(client, admin_headers, monkeypatch):
    def explode():
        raise RuntimeError("database exploded")

    monkeypatch.setattr(reviews_service, "list_reviews", explode)
    response = client.get("/api/reviews")
    assert response.status_code == 500
    assert response.get_json() == {"error": "Internal server error"}


def test_storage_errors_map_to_500_with_message(client, admin_headers, monkeypatch):
    def failing_commit(action):
        raise StorageError(f"Unable to {action}.")

    monkeypatch.setattr(reviews_service, "commit", failing_commit)
    response = client.post(
        "/api/reviews",
        json={"customerName": "Oleg", "rating": 4, "comment": "Fine"},
        headers=admin_headers,
    )
    assert response.status_code == 500
    assert response.get_json() == {"error": "Unable to create review."}
