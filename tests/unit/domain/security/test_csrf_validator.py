"""Unit tests for Origin/Referer CSRF validation."""

import pytest

from portcullis.domain.security.csrf import CSRFValidator, referer_origin

ALLOWED = "https://app.example.com"


@pytest.fixture
def validator():
    return CSRFValidator([ALLOWED, "http://localhost:3000"])


class TestSafeMethods:
    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS", "get"])
    def test_safe_methods_pass_without_headers(self, validator, method):
        decision = validator.validate(method, None, None)
        assert decision.allowed is True
        assert decision.reason == "safe_method"


class TestStateChangingMethods:
    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE", "post"])
    def test_allowed_origin_passes(self, validator, method):
        assert validator.validate(method, ALLOWED, None).allowed is True

    def test_foreign_origin_is_rejected(self, validator):
        decision = validator.validate("POST", "https://evil.example", None)
        assert decision.allowed is False
        assert decision.reason == "origin_not_allowed"

    def test_origin_wins_over_referer(self, validator):
        decision = validator.validate("POST", "https://evil.example", f"{ALLOWED}/page")
        assert decision.allowed is False

    def test_null_origin_is_rejected(self, validator):
        assert validator.validate("POST", "null", None).allowed is False

    def test_referer_fallback_allows_listed_origin(self, validator):
        decision = validator.validate("POST", None, f"{ALLOWED}/settings?tab=1")
        assert decision.allowed is True
        assert decision.reason == "referer_allowed"

    def test_referer_fallback_rejects_foreign_origin(self, validator):
        decision = validator.validate("DELETE", None, "https://evil.example/app.example.com")
        assert decision.allowed is False
        assert decision.reason == "referer_not_allowed"

    def test_malformed_referer_is_rejected(self, validator):
        decision = validator.validate("POST", None, "not a url")
        assert decision.allowed is False
        assert decision.reason == "referer_malformed"

    def test_missing_both_headers_is_rejected(self, validator):
        decision = validator.validate("POST", None, None)
        assert decision.allowed is False
        assert decision.reason == "missing_origin_and_referer"

    def test_empty_headers_count_as_missing(self, validator):
        assert validator.validate("PUT", "", "").reason == "missing_origin_and_referer"

    def test_allow_list_is_a_snapshot(self):
        origins = [ALLOWED]
        validator = CSRFValidator(origins)
        origins.append("https://late.example")

        assert validator.validate("POST", "https://late.example", None).allowed is False


class TestRefererOrigin:
    @pytest.mark.parametrize(
        "referer,expected",
        [
            ("https://app.example.com/a/b?c=d#e", "https://app.example.com"),
            ("https://APP.Example.com/", "https://app.example.com"),
            ("https://app.example.com:443/", "https://app.example.com"),
            ("http://localhost:80/", "http://localhost"),
            ("http://localhost:3000/login", "http://localhost:3000"),
            ("https://user:pw@app.example.com/", "https://app.example.com"),
            ("http://[::1]:8080/x", "http://[::1]:8080"),
        ],
    )
    def test_serializes_origin(self, referer, expected):
        assert referer_origin(referer) == expected

    @pytest.mark.parametrize(
        "referer",
        [
            "not a url",
            "/relative/path",
            "javascript:alert(1)",
            "data:text/html,hi",
            "http://localhost:99999/",
            "https://",
        ],
    )
    def test_unparseable_or_opaque_returns_none(self, referer):
        assert referer_origin(referer) is None
