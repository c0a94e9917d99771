"""DoS gate behaviour as seen by HTTP clients.

The gate is off by default outside production, so every test here builds an
application with ``DOS_PROTECTION_ENABLED=True``.
"""

import pytest
from fastapi.testclient import TestClient

BROWSER = {"user-agent": "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X)"}
HEALTH_URL = "/api/v1/health"


@pytest.fixture
def guarded_client(app_factory, settings_factory):
    def _build(**overrides):
        settings = settings_factory(DOS_PROTECTION_ENABLED=True, **overrides)
        return TestClient(app_factory(settings=settings))

    return _build


def from_ip(ip, **headers):
    return {**BROWSER, "x-forwarded-for": ip, **headers}


def test_ordinary_traffic_is_admitted(guarded_client):
    with guarded_client() as client:
        response = client.get(HEALTH_URL, headers=from_ip("198.51.100.7"))

        assert response.status_code == 200
        stats = response.json()["dos_protection"]
        assert stats["enabled"] is True
        assert stats["active_requests"] == 1


def test_scripted_client_is_blocked_then_quarantined(guarded_client, clock):
    """Scenario: a scraper announces itself with a library user agent.

    The first request is rejected on its user agent; the address then stays
    blocked for the suspicion period even with a browser user agent.
    """
    with guarded_client() as client:
        scripted = client.get(
            HEALTH_URL, headers=from_ip("203.0.113.5", **{"user-agent": "python-requests/2.31"})
        )
        disguised = client.get(HEALTH_URL, headers=from_ip("203.0.113.5"))
        bystander = client.get(HEALTH_URL, headers=from_ip("203.0.113.6"))

        assert scripted.status_code == 429
        assert scripted.json() == {"error": "Request blocked"}
        assert disguised.status_code == 429
        assert bystander.status_code == 200

        clock.advance(30 * 60 * 1000)

        assert client.get(HEALTH_URL, headers=from_ip("203.0.113.5")).status_code == 200


def test_traversal_in_content_type_is_blocked(guarded_client):
    with guarded_client() as client:
        probe = client.get(
            HEALTH_URL,
            headers=from_ip("203.0.113.8", **{"content-type": "text/../../etc/passwd"}),
        )

        assert probe.status_code == 429
        assert probe.json() == {"error": "Request blocked"}


def test_oversized_upload_is_rejected_before_routing(guarded_client):
    with guarded_client(MAX_REQUEST_SIZE=64) as client:
        response = client.post(
            "/api/v1/auth/login",
            content=b"x" * 65,
            headers=from_ip("198.51.100.20", **{"content-type": "application/json"}),
        )

        assert response.status_code == 413
        assert response.json() == {"error": "Request too large"}


def test_concurrency_cap_releases_after_timeout(guarded_client, clock):
    with guarded_client(MAX_CONCURRENT_REQUESTS=2, REQUEST_TIMEOUT_MS=1000) as client:
        statuses = [
            client.get(HEALTH_URL, headers=from_ip("198.51.100.30")).status_code
            for _ in range(3)
        ]
        assert statuses == [200, 200, 429]

        clock.advance(1000)

        assert client.get(HEALTH_URL, headers=from_ip("198.51.100.30")).status_code == 200


def test_auth_paths_have_a_tight_gate_limit(guarded_client):
    """Scenario: credential guessing against every auth endpoint.

    The gate's ``auth`` rule counts all ``/auth/`` paths together, ahead of
    the login handler's own LOGIN rule.
    """
    with guarded_client() as client:
        headers = from_ip("192.0.2.44", origin="http://localhost:3000")
        body = {"email": "nobody@example.com", "password": "x"}

        statuses = [
            client.post("/api/v1/auth/login", json=body, headers=headers).status_code
            for _ in range(5)
        ]
        limited = client.post("/api/v1/auth/login", json=body, headers=headers)

        assert statuses == [401] * 5
        assert limited.status_code == 429
        assert limited.json() == {"error": "Rate limit exceeded"}
        assert limited.headers["Retry-After"] == str(15 * 60)
        assert "X-RateLimit-Reset" not in limited.headers


def test_gate_failure_admits_traffic(guarded_client, mocker):
    with guarded_client() as client:
        gate = client.app.state.security.dos_gate
        mocker.patch.object(gate, "_evaluate", side_effect=RuntimeError("bug"))

        response = client.get(HEALTH_URL, headers=from_ip("198.51.100.40"))

        assert response.status_code == 200
