"""Unit tests for the Starlette adapters around the admission-control domain."""

import json

import pytest
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from portcullis.adapters.api.protection import (
    client_ip_for,
    csrf_protection,
    protect,
    rejection_message,
    snapshot_from_request,
    with_dos_protection,
)
from portcullis.domain.rate_limiting.entities import RateLimitResult
from portcullis.domain.security.csrf import CSRFValidator
from portcullis.domain.security.dos_protection import (
    AdmissionDecision,
    DoSGate,
    DoSProtectionConfig,
)

BROWSER = "Mozilla/5.0 (Windows NT 10.0; Win64; x64)"


def make_request(method="GET", path="/api/plants", headers=None, client=("10.0.0.1", 5000)):
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    scope = {
        "type": "http",
        "method": method,
        "path": path,
        "raw_path": path.encode(),
        "query_string": b"",
        "headers": raw_headers,
        "client": client,
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


@pytest.fixture
def gate(rate_limiter, clock):
    return DoSGate(DoSProtectionConfig(enabled=True), rate_limiter, clock=clock)


async def ok_handler(request):
    return PlainTextResponse("ok")


class TestRequestTranslation:
    def test_snapshot_reads_headers(self):
        request = make_request(
            method="POST",
            path="/api/upload",
            headers={
                "user-agent": BROWSER,
                "content-length": "42",
                "content-type": "image/png",
                "x-forwarded-for": "203.0.113.9, 10.0.0.1",
            },
        )

        snapshot = snapshot_from_request(request)

        assert snapshot.ip == "203.0.113.9"
        assert snapshot.method == "POST"
        assert snapshot.path == "/api/upload"
        assert snapshot.content_length == "42"
        assert snapshot.content_type == "image/png"

    def test_peer_address_is_used_without_proxy_headers(self):
        assert client_ip_for(make_request()) == "10.0.0.1"

    def test_missing_peer_is_unknown(self):
        assert client_ip_for(make_request(client=None)) == "unknown"


class TestRejectionMessages:
    @pytest.mark.parametrize(
        "decision,message",
        [
            (AdmissionDecision.reject(413, "payload_too_large:1"), "Request too large"),
            (
                AdmissionDecision.reject(429, "too_many_concurrent_requests"),
                "Too many concurrent requests",
            ),
            (
                AdmissionDecision.reject(
                    429, "rate_limit_exceeded:general", rate_limit=RateLimitResult(False, 101, 0, 1)
                ),
                "Rate limit exceeded",
            ),
            (AdmissionDecision.reject(429, "path_traversal"), "Request blocked"),
            (AdmissionDecision.reject(429, "suspicious_ip"), "Request blocked"),
        ],
    )
    def test_messages_never_name_the_heuristic(self, decision, message):
        assert rejection_message(decision) == message


class TestProtect:
    @pytest.mark.asyncio
    async def test_admitted_request_returns_none(self, gate):
        request = make_request(headers={"user-agent": BROWSER})
        assert await protect(request, gate) is None

    @pytest.mark.asyncio
    async def test_rejection_is_json_with_generic_message(self, gate):
        request = make_request(
            headers={"user-agent": BROWSER, "content-length": str(11 * 1024 * 1024)}
        )

        response = await protect(request, gate)

        assert response.status_code == 413
        assert json.loads(response.body) == {"error": "Request too large"}

    @pytest.mark.asyncio
    async def test_handler_runs_when_admitted(self, gate):
        request = make_request(headers={"user-agent": BROWSER})
        response = await with_dos_protection(request, ok_handler, gate)
        assert response.body == b"ok"

    @pytest.mark.asyncio
    async def test_handler_is_skipped_when_rejected(self, gate, mocker):
        handler = mocker.AsyncMock()
        request = make_request(headers={"user-agent": "curl/8.0"})

        response = await with_dos_protection(request, handler, gate)

        assert response.status_code == 429
        handler.assert_not_called()

    @pytest.mark.asyncio
    async def test_handler_error_becomes_generic_500(self, gate):
        async def broken(request):
            raise RuntimeError("database password is hunter2")

        request = make_request(headers={"user-agent": BROWSER})
        response = await with_dos_protection(request, broken, gate)

        assert response.status_code == 500
        assert json.loads(response.body) == {"error": "Internal server error"}


class TestCSRFProtection:
    @pytest.fixture
    def validator(self):
        return CSRFValidator(["https://app.example.com"])

    def test_allowed_origin_proceeds(self, validator):
        request = make_request("POST", headers={"origin": "https://app.example.com"})
        assert csrf_protection(request, validator) is None

    def test_safe_method_proceeds(self, validator):
        assert csrf_protection(make_request("GET"), validator) is None

    def test_rejection_is_403_and_logged(self, validator, mocker):
        log = mocker.patch("portcullis.adapters.api.protection.logger")
        request = make_request(
            "DELETE", headers={"origin": "https://evil.example", "user-agent": BROWSER}
        )

        response = csrf_protection(request, validator)

        assert response.status_code == 403
        assert json.loads(response.body)["code"] == "CSRF_VALIDATION_FAILED"
        log.warning.assert_called_once()
        assert log.warning.call_args.kwargs["origin"] == "https://evil.example"
        assert log.warning.call_args.kwargs["reason"] == "origin_not_allowed"
