"""Sign-in journeys through the full application stack.

Each test drives ``POST /api/v1/auth/login`` through CSRF validation, the
per-IP LOGIN rule and the per-account lockout.
"""

ALLOWED_ORIGIN = "http://localhost:3000"
KNOWN_EMAIL = "gardener@example.com"
KNOWN_PASSWORD = "Correct-Horse-9"

LOGIN_URL = "/api/v1/auth/login"
INVALID_BODY = {"error": "Invalid email or password"}


def login(client, email, password, ip="198.51.100.1", origin=ALLOWED_ORIGIN, **headers):
    if origin is not None:
        headers["origin"] = origin
    headers["x-forwarded-for"] = ip
    return client.post(LOGIN_URL, json={"email": email, "password": password}, headers=headers)


def test_successful_login(client):
    response = login(client, KNOWN_EMAIL, KNOWN_PASSWORD)

    assert response.status_code == 200
    assert response.json() == {"user_id": "user-1"}


def test_login_without_origin_is_blocked_by_csrf(client):
    """A cross-site form post carries no allowed Origin or Referer."""
    response = login(client, KNOWN_EMAIL, KNOWN_PASSWORD, origin=None)

    assert response.status_code == 403
    assert response.json()["code"] == "CSRF_VALIDATION_FAILED"


def test_login_with_allowed_referer_succeeds(client):
    response = login(
        client, KNOWN_EMAIL, KNOWN_PASSWORD, origin=None, referer=f"{ALLOWED_ORIGIN}/signin"
    )
    assert response.status_code == 200


def test_login_from_foreign_origin_is_blocked(client):
    response = login(client, KNOWN_EMAIL, KNOWN_PASSWORD, origin="https://evil.example")
    assert response.status_code == 403


def test_unknown_email_and_wrong_password_are_indistinguishable(client):
    unknown = login(client, "nobody@example.com", KNOWN_PASSWORD, ip="198.51.100.2")
    wrong = login(client, KNOWN_EMAIL, "not-the-password", ip="198.51.100.3")

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json() == INVALID_BODY


def test_account_locks_after_repeated_failures_across_ips(client, clock):
    """Scenario: a credential-stuffing botnet rotates source addresses.

    The per-IP LOGIN rule never fires, but the account locks after five
    failures and stays locked even for the right password until the lock
    duration passes.
    """
    for i in range(5):
        response = login(client, KNOWN_EMAIL, f"guess-{i}", ip=f"203.0.113.{i}")
        assert response.status_code == 401

    locked = login(client, KNOWN_EMAIL, KNOWN_PASSWORD, ip="203.0.113.50")
    assert locked.status_code == 401
    assert locked.json() == INVALID_BODY

    clock.advance(30 * 60 * 1000)

    unlocked = login(client, KNOWN_EMAIL, KNOWN_PASSWORD, ip="203.0.113.51")
    assert unlocked.status_code == 200


def test_login_rule_limits_one_ip(client):
    """Scenario: a single host hammers the login form."""
    statuses = [
        login(client, f"user{i}@example.com", "x", ip="192.0.2.10").status_code for i in range(5)
    ]
    limited = login(client, KNOWN_EMAIL, KNOWN_PASSWORD, ip="192.0.2.10")

    assert statuses == [401] * 5
    assert limited.status_code == 429
    assert limited.headers["Retry-After"] == str(15 * 60)
    assert limited.headers["X-RateLimit-Remaining"] == "0"
    assert "IP address" in limited.json()["error"]

    other_ip = login(client, KNOWN_EMAIL, KNOWN_PASSWORD, ip="192.0.2.11")
    assert other_ip.status_code == 200


def test_malformed_body_is_a_validation_error(client):
    response = client.post(
        LOGIN_URL, json={"email": KNOWN_EMAIL}, headers={"origin": ALLOWED_ORIGIN}
    )
    assert response.status_code == 422
