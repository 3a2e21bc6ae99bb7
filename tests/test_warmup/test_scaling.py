"""
Tests for invocation count policies and payload builders.
"""

import json
import random
from datetime import datetime, timezone

import pytest

from core.invoker.models import InvocationResult
from core.warmup.exceptions import ResultRetrievalError
from core.warmup.models import InvocationOutcome, WarmupTarget, now_millis
from core.warmup.scaling import (
    LATEST_REQUEST_TIME_FORMAT,
    AdaptiveScaler,
    HoldPayloadBuilder,
    StaticCountPolicy,
    StaticPayloadBuilder,
)


def _outcome(function_name, body, function_error=None, invocation_no=1):
    payload = body if isinstance(body, bytes) else json.dumps(body).encode()
    return InvocationOutcome(
        iteration_no=1,
        invocation_no=invocation_no,
        function_name=function_name,
        result=InvocationResult(payload=payload, function_error=function_error),
    )


class TestStaticCountPolicy:
    """Test StaticCountPolicy."""

    def test_default_count(self):
        """Test baseline is used without an override."""
        assert StaticCountPolicy().invocation_count_for("orders-api", 8, 0) == 8

    def test_override_count(self):
        """Test positive override wins."""
        assert StaticCountPolicy().invocation_count_for("orders-api", 8, 3) == 3


class TestAdaptiveScaler:
    """Test AdaptiveScaler."""

    @pytest.fixture
    def scaler(self):
        """Create scaler with default idle time."""
        return AdaptiveScaler(idle_time_millis=30 * 60 * 1000, scale_factor=2.0)

    def test_no_samples_falls_back(self, scaler):
        """Test functions without activity use the static count."""
        assert scaler.invocation_count_for("orders-api", 8, 0) == 8
        assert scaler.invocation_count_for("orders-api", 8, 5) == 5

    def test_scaled_count(self, scaler):
        """Test count scales with active instances."""
        current = now_millis()
        for instance_id in ("a", "b", "c"):
            scaler.record_activity("orders-api", instance_id, current)

        assert scaler.invocation_count_for("orders-api", 8, 0) == 6

    def test_scaled_count_at_least_one(self):
        """Test tiny scale factors never drop below one invocation."""
        scaler = AdaptiveScaler(scale_factor=0.1)
        scaler.record_activity("orders-api", "a", now_millis())

        assert scaler.invocation_count_for("orders-api", 8, 0) == 1

    def test_disabled(self):
        """Test disabled scaler uses the static count."""
        scaler = AdaptiveScaler(disabled=True)
        scaler.record_activity("orders-api", "a", now_millis())

        assert scaler.invocation_count_for("orders-api", 8, 0) == 8

    def test_ingest_records_activity(self, scaler):
        """Test activity reported by functions is recorded."""
        current = now_millis()
        scaler.ingest(
            [
                _outcome("orders-api", {"instanceId": "a", "lastRequestTime": current}),
                _outcome("orders-api", {"instanceId": "b", "lastRequestTime": current}, invocation_no=2),
            ]
        )

        assert scaler.activity("orders-api") == {"a": current, "b": current}
        assert scaler.invocation_count_for("orders-api", 8, 0) == 4

    def test_ingest_is_idempotent(self, scaler):
        """Test repeated reports of the same instances do not change the count."""
        current = now_millis()
        outcomes = [_outcome("orders-api", {"instanceId": "a", "lastRequestTime": current})]

        scaler.ingest(outcomes)
        first = scaler.invocation_count_for("orders-api", 8, 0)
        scaler.ingest(outcomes)

        assert scaler.invocation_count_for("orders-api", 8, 0) == first == 2

    def test_ingest_legacy_request_time(self, scaler):
        """Test string request times are parsed as UTC."""
        timestamp = datetime.now(timezone.utc).strftime(LATEST_REQUEST_TIME_FORMAT)
        scaler.ingest([_outcome("orders-api", {"instanceId": "a", "latestRequestTime": timestamp})])

        assert "a" in scaler.activity("orders-api")

    def test_ingest_skips_unusable_outcomes(self, scaler):
        """Test failures, errors and malformed bodies are ignored."""
        current = now_millis()
        scaler.ingest(
            [
                InvocationOutcome(
                    1, 1, "orders-api",
                    error=ResultRetrievalError(1, 1, "orders-api", RuntimeError("x")),
                ),
                _outcome(
                    "orders-api",
                    {"instanceId": "a", "lastRequestTime": current},
                    function_error="Unhandled",
                    invocation_no=2,
                ),
                _outcome("orders-api", b"{not json", invocation_no=3),
                _outcome("orders-api", b"", invocation_no=4),
                _outcome("orders-api", ["a"], invocation_no=5),
                _outcome("orders-api", {"instanceId": "b"}, invocation_no=6),
                _outcome("orders-api", {"instanceId": "c", "lastRequestTime": 0}, invocation_no=7),
            ]
        )

        assert scaler.activity("orders-api") == {}

    @pytest.mark.parametrize("raw_time", [b"NaN", b"Infinity", b"-Infinity", b"1e400"])
    def test_ingest_skips_non_finite_request_time(self, scaler, raw_time):
        """Test non-finite request times are ignored."""
        payload = b'{"instanceId": "a", "lastRequestTime": ' + raw_time + b"}"

        scaler.ingest([_outcome("orders-api", payload)])

        assert scaler.activity("orders-api") == {}

    def test_invocation_count_is_stable(self, scaler):
        """Test repeated count queries without new activity agree."""
        current = now_millis()
        scaler.record_activity("orders-api", "a", current)
        scaler.record_activity("orders-api", "b", current)
        scaler.record_activity("orders-api", "c", current - scaler.idle_time_millis - 60000)

        first = scaler.invocation_count_for("orders-api", 8, 0)
        second = scaler.invocation_count_for("orders-api", 8, 0)

        assert first == second == 4
        assert set(scaler.activity("orders-api")) == {"a", "b"}

    def test_expired_samples_evicted(self, scaler):
        """Test instances idle beyond the idle time are dropped."""
        stale = now_millis() - scaler.idle_time_millis - 60000
        scaler.ingest([_outcome("orders-api", {"instanceId": "a", "lastRequestTime": stale})])

        assert scaler.activity("orders-api") == {}
        assert scaler.invocation_count_for("orders-api", 8, 0) == 1


class TestStaticPayloadBuilder:
    """Test StaticPayloadBuilder."""

    def test_invocation_data(self):
        """Test configured invocation data is sent."""
        target = WarmupTarget("orders-api", invocation_data='{"warmup": true}')

        payloads = StaticPayloadBuilder().round_payloads(target, 3)

        assert payloads == [b'{"warmup": true}'] * 3

    def test_empty_payload(self):
        """Test functions without invocation data get an empty body."""
        assert StaticPayloadBuilder().round_payloads(WarmupTarget("orders-api"), 2) == [b"", b""]


class TestHoldPayloadBuilder:
    """Test HoldPayloadBuilder."""

    def test_wait_grows_with_concurrency(self):
        """Test the wait adds 100ms per 10 invocations."""
        builder = HoldPayloadBuilder(rng=random.Random(7))

        payloads = builder.round_payloads(WarmupTarget("orders-api"), 25)

        assert len(payloads) == 25
        assert payloads.count(b"#warmup wait=200") == 24
        assert payloads.count(b"#warmup wait=2000") == 1

    def test_small_round(self):
        """Test fewer than 10 invocations carry no extra wait."""
        builder = HoldPayloadBuilder(rng=random.Random(7))

        payloads = builder.round_payloads(WarmupTarget("orders-api"), 5)

        assert payloads == [b"#warmup wait=0"] * 5

    def test_hold_invocation_no_in_range(self):
        """Test the held invocation is one of the round."""
        builder = HoldPayloadBuilder(rng=random.Random(1))
        for _ in range(50):
            assert 1 <= builder.hold_invocation_no(4) <= 4
