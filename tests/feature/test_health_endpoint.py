from fastapi.testclient import TestClient


def test_health_in_memory_mode(client):
    response = client.get("/api/v1/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["env"] == "test"
    assert body["services"]["store"] == {"status": "not_configured", "mode": "in_memory"}
    assert body["dos_protection"] == {
        "enabled": False,
        "active_requests": 0,
        "suspicious_ips": 0,
        "durable_store": False,
    }


def test_docs_are_served_outside_production(client):
    assert client.get("/openapi.json").status_code == 200


def test_docs_are_hidden_in_production(app_factory, settings_factory):
    settings = settings_factory(
        APP_ENV="production",
        ALLOWED_ORIGINS="https://app.example.com",
        DOS_PROTECTION_ENABLED=False,
    )
    with TestClient(app_factory(settings=settings)) as client:
        assert client.get("/openapi.json").status_code == 404
        assert client.get("/api/v1/health").json()["env"] == "production"
