from fastapi.testclient import TestClient


def test_health_root(client: TestClient):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_health_checkout(client: TestClient, monkeypatch, tmp_path):
    monkeypatch.setattr("backend.health.service.ORDER_API_BASE_URL", "")
    monkeypatch.setattr("backend.health.service.STRIPE_SECRET_KEY", "sk_test_123")
    monkeypatch.setattr("backend.health.service.TEMP_UPLOAD_DIR", tmp_path)

    r = client.get("/health/checkout")
    assert r.status_code == 200
    info = r.json()
    assert info["stripe_configured"] is True
    assert info["order_api"]["hostname"] is None
    assert info["temp_upload_dir"]["writable"] is True
    # lifespan de test: rate limiting désactivé
    assert info["rate_limit"]["enabled"] is False
