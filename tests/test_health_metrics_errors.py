from __future__ import annotations

from fastapi.testclient import TestClient

from classpages.api.deps import get_service
from classpages.api.main import app
from classpages.api.observability.metrics import normalize_path


def test_liveness(client):
    r = client.get("/api/v1/health/live")
    assert r.status_code == 200
    assert r.json() == {"status": "alive"}


def test_readiness_depends_on_catalog_root(client, monkeypatch, tmp_path):
    monkeypatch.setenv("CLASSPAGES_WORKSPACE_ROOT", str(tmp_path / "ws"))
    monkeypatch.setenv("CLASSPAGES_CATALOG_ROOT", str(tmp_path / "missing"))
    r = client.get("/api/v1/health/ready")
    assert r.status_code == 503
    assert any(p.startswith("missing_catalog_root") for p in r.json()["problems"])

    (tmp_path / "missing").mkdir()
    r = client.get("/api/v1/health/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ready"}


def test_metrics_exposes_counters_after_a_view(client):
    client.get("/api/v1/pages/view")
    text = client.get("/metrics").text
    assert "classpages_http_requests_total" in text
    assert "classpages_view_builds_total" in text


def test_normalize_path_collapses_identifiers():
    assert normalize_path("/api/v1/settings/overrides/wizard") == "/api/v1/settings/overrides/:identifier"
    assert normalize_path("/api/v1/settings/sources/spells") == "/api/v1/settings/sources/:record_type"
    assert normalize_path("/api/v1/pages/view") == "/api/v1/pages/view"


def test_request_id_is_echoed(client):
    r = client.get("/api/v1/pages/view", headers={"X-Request-Id": "rid-123"})
    assert r.headers["X-Request-Id"] == "rid-123"


def test_unhandled_error_hides_traceback():
    class BrokenService:
        async def build_view(self, *args, **kwargs):
            raise RuntimeError("catalog exploded")

    app.dependency_overrides[get_service] = lambda: BrokenService()
    try:
        c = TestClient(app, raise_server_exceptions=False)
        r = c.get("/api/v1/pages/view", headers={"X-Request-Id": "rid-err"})
    finally:
        app.dependency_overrides.pop(get_service, None)

    assert r.status_code == 500
    assert r.json() == {"detail": "Internal Server Error", "request_id": "rid-err"}
    assert "Traceback" not in r.text
    assert "catalog exploded" not in r.text


def test_blank_override_identifier_is_a_bad_request(client):
    r = client.put("/api/v1/settings/overrides/%20%20", json={"label": "x"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Class identifier is required"


def test_unexpected_value_error_is_not_echoed():
    class LeakyService:
        async def build_view(self, *args, **kwargs):
            raise ValueError("invalid literal for int() with base 10: 'secret'")

    app.dependency_overrides[get_service] = lambda: LeakyService()
    try:
        r = TestClient(app, raise_server_exceptions=False).get("/api/v1/pages/view")
    finally:
        app.dependency_overrides.pop(get_service, None)

    assert r.status_code == 500
    assert r.json()["detail"] == "Internal Server Error"
    assert "secret" not in r.text
