"""Unit tests for the DoS admission gate."""

import pytest
from starlette import status

from portcullis.domain.security.dos_protection import (
    DoSGate,
    DoSProtectionConfig,
    RequestSnapshot,
    parse_content_length,
)

BROWSER = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0)"


def snapshot(ip="1.2.3.4", path="/api/plants", **kwargs):
    kwargs.setdefault("user_agent", BROWSER)
    return RequestSnapshot(ip=ip, method="GET", path=path, **kwargs)


@pytest.fixture
def make_gate(rate_limiter, clock):
    def _build(**overrides):
        config = DoSProtectionConfig(enabled=True, **overrides)
        return DoSGate(config, rate_limiter, clock=clock)

    return _build


@pytest.fixture
def gate(make_gate):
    return make_gate()


class TestDisabledGate:
    @pytest.mark.asyncio
    async def test_admits_everything(self, rate_limiter, clock):
        gate = DoSGate(DoSProtectionConfig(), rate_limiter, clock=clock)

        decision = await gate.evaluate(
            snapshot(user_agent="curl/8.0", content_length=str(100 * 1024 * 1024))
        )

        assert decision.admitted is True
        assert gate.get_stats()["active_requests"] == 0


class TestPayloadSize:
    @pytest.mark.asyncio
    async def test_oversized_payload_is_413(self, gate):
        decision = await gate.evaluate(snapshot(content_length=str(10 * 1024 * 1024 + 1)))

        assert decision.admitted is False
        assert decision.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert decision.reason.startswith("payload_too_large:")

    @pytest.mark.asyncio
    async def test_limit_is_inclusive(self, gate):
        decision = await gate.evaluate(snapshot(content_length=str(10 * 1024 * 1024)))
        assert decision.admitted is True

    @pytest.mark.asyncio
    async def test_non_numeric_length_is_ignored(self, gate):
        decision = await gate.evaluate(snapshot(content_length="lots"))
        assert decision.admitted is True

    @pytest.mark.parametrize(
        "raw,expected",
        [(None, None), ("", None), ("12", 12), (" 12 ", 12), ("-1", None), ("1e3", None)],
    )
    def test_parse_content_length(self, raw, expected):
        assert parse_content_length(raw) == expected


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_cap_is_per_ip(self, make_gate):
        gate = make_gate(max_concurrent_requests=2)

        first = [await gate.evaluate(snapshot(ip="1.1.1.1")) for _ in range(3)]
        other = await gate.evaluate(snapshot(ip="2.2.2.2"))

        assert [d.admitted for d in first] == [True, True, False]
        assert first[2].status_code == 429
        assert first[2].reason == "too_many_concurrent_requests"
        assert other.admitted is True

    @pytest.mark.asyncio
    async def test_active_requests_time_out(self, make_gate, clock):
        gate = make_gate(max_concurrent_requests=1, request_timeout_ms=30_000)
        await gate.evaluate(snapshot())
        assert gate.active_requests_for("1.2.3.4") == 1

        clock.advance(30_000)

        assert gate.active_requests_for("1.2.3.4") == 0
        assert (await gate.evaluate(snapshot())).admitted is True


class TestRateLimit:
    @pytest.mark.asyncio
    async def test_path_rule_rejects_with_retry_headers(self, gate):
        decisions = [await gate.evaluate(snapshot(path="/api/auth/signin")) for _ in range(6)]

        assert all(d.admitted for d in decisions[:5])
        rejected = decisions[5]
        assert rejected.status_code == 429
        assert rejected.rate_limit is not None
        assert rejected.headers["Retry-After"] == str(15 * 60)
        assert rejected.headers["X-RateLimit-Remaining"] == "0"
        assert "X-RateLimit-Reset" not in rejected.headers

    @pytest.mark.asyncio
    async def test_gate_counts_under_its_own_scope(self, gate, rate_limiter):
        for _ in range(6):
            await gate.evaluate(snapshot(path="/api/auth/signin"))

        decision = await rate_limiter.check_named_rule("auth", "1.2.3.4", "ip")

        assert decision.limited is False


class TestAnomalies:
    @pytest.mark.asyncio
    async def test_anomaly_marks_ip_suspicious(self, gate):
        first = await gate.evaluate(snapshot(user_agent="python-requests/2.31"))
        second = await gate.evaluate(snapshot())

        assert first.status_code == 429
        assert first.reason == "automation_user_agent"
        assert second.admitted is False
        assert second.reason == "suspicious_ip"

    @pytest.mark.asyncio
    async def test_suspicion_expires(self, gate, clock):
        gate.mark_suspicious("1.2.3.4")
        clock.advance(30 * 60 * 1000 - 1)
        assert (await gate.evaluate(snapshot())).admitted is False

        clock.advance(1)

        assert (await gate.evaluate(snapshot())).admitted is True
        assert gate.get_stats()["suspicious_ips"] == 0

    @pytest.mark.asyncio
    async def test_detection_can_be_switched_off(self, make_gate):
        gate = make_gate(anomaly_detection=False)
        decision = await gate.evaluate(snapshot(user_agent="curl/8.0"))
        assert decision.admitted is True


class TestFailOpen:
    @pytest.mark.asyncio
    async def test_internal_error_admits_and_logs(self, gate, mocker):
        mocker.patch.object(
            gate.rate_limiter, "check_rate_limit", side_effect=RuntimeError("boom")
        )
        log = mocker.patch("portcullis.domain.security.dos_protection.logger")

        decision = await gate.evaluate(snapshot())

        assert decision.admitted is True
        log.error.assert_called_once()
        assert log.error.call_args.args[0] == "dos_protection_error"


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_sweep_drops_stale_requests_and_expired_ips(self, gate, clock):
        await gate.evaluate(snapshot(ip="1.1.1.1"))
        await gate.evaluate(snapshot(ip="2.2.2.2"))
        gate.mark_suspicious("3.3.3.3")

        clock.advance(30 * 60 * 1000)
        gate.sweep()

        stats = gate.get_stats()
        assert stats["active_requests"] == 0
        assert stats["suspicious_ips"] == 0
        assert gate.detector.tracked_ips() == 0

    def test_stats_shape(self, gate):
        assert gate.get_stats() == {
            "enabled": True,
            "active_requests": 0,
            "suspicious_ips": 0,
            "durable_store": False,
        }

    @pytest.mark.asyncio
    async def test_sweep_loop_only_starts_when_enabled(self, rate_limiter, clock):
        gate = DoSGate(DoSProtectionConfig(), rate_limiter, clock=clock)
        gate.start()
        assert gate._sweep_task.running is False
        await gate.stop()
