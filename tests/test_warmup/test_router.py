"""
Tests for the strategy router.
"""

import threading
import time

import pytest

from core.warmup.exceptions import CompositeStrategyError, WarmupConfigurationError
from core.warmup.models import WarmupTarget
from core.warmup.registry import StrategyRegistry
from core.warmup.router import StrategyRouter


class RecordingDispatcher:
    """Dispatcher double recording every dispatch call."""

    def __init__(self, error=None, delay=0.0):
        self.error = error
        self.delay = delay
        self.calls = []
        self._lock = threading.Lock()

    def dispatch(self, deadline_millis, targets):
        with self._lock:
            self.calls.append((deadline_millis, [t.name for t in targets]))
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return []


def _registry(**dispatchers):
    registry = StrategyRegistry()
    for name, dispatcher in dispatchers.items():
        registry.register(name, dispatcher)
    return registry


class TestStrategyRouter:
    """Test StrategyRouter."""

    def test_route_by_strategy(self):
        """Test unassigned targets go to the default, others to their strategy."""
        a, b = RecordingDispatcher(), RecordingDispatcher()
        router = StrategyRouter(_registry(A=a, B=b), default_strategy="A")

        results = router.route(5000, [WarmupTarget("f1"), WarmupTarget("f2", strategy="B")])

        assert a.calls == [(5000, ["f1"])]
        assert b.calls == [(5000, ["f2"])]
        assert set(results) == {"A", "B"}

    def test_default_assignment_merged(self):
        """Test targets naming the default share its single dispatch."""
        a, b = RecordingDispatcher(), RecordingDispatcher()
        router = StrategyRouter(_registry(A=a, B=b), default_strategy="A")

        router.route(5000, [WarmupTarget("f1"), WarmupTarget("f2", strategy="A")])

        assert a.calls == [(5000, ["f1", "f2"])]
        assert b.calls == []

    def test_shared_dispatcher_dispatched_once(self):
        """Test names resolving to one dispatcher are dispatched together."""
        a, b = RecordingDispatcher(), RecordingDispatcher()
        registry = _registry(A=a, B=b)
        registry.register("B-alias", b)
        router = StrategyRouter(registry, default_strategy="A")

        router.route(
            5000,
            [WarmupTarget("f1", strategy="B"), WarmupTarget("f2", strategy="B-alias")],
        )

        assert b.calls == [(5000, ["f1", "f2"])]
        assert a.calls == []

    def test_registry_default_used(self):
        """Test the registry default applies without an explicit one."""
        a = RecordingDispatcher()
        router = StrategyRouter(_registry(A=a))

        router.route(100, [WarmupTarget("f1")])

        assert router.default_strategy == "A"
        assert a.calls == [(100, ["f1"])]

    def test_all_failures_collected(self):
        """Test every failing strategy is reported."""
        a = RecordingDispatcher(error=RuntimeError("a failed"))
        b = RecordingDispatcher(error=RuntimeError("b failed"))
        router = StrategyRouter(_registry(A=a, B=b), default_strategy="A")

        with pytest.raises(CompositeStrategyError) as exc_info:
            router.route(5000, [WarmupTarget("f1"), WarmupTarget("f2", strategy="B")])

        errors = exc_info.value.errors
        assert len(errors) == 2
        assert {str(e) for e in errors} == {"a failed", "b failed"}
        assert "2 strategy error(s)" in str(exc_info.value)

    def test_failure_waits_for_other_strategies(self):
        """Test a failure is raised only after slower strategies finish."""
        a = RecordingDispatcher(error=RuntimeError("a failed"))
        b = RecordingDispatcher(delay=0.1)
        router = StrategyRouter(_registry(A=a, B=b), default_strategy="A")

        with pytest.raises(CompositeStrategyError) as exc_info:
            router.route(5000, [WarmupTarget("f1"), WarmupTarget("f2", strategy="B")])

        assert len(exc_info.value.errors) == 1
        assert b.calls == [(5000, ["f2"])]

    def test_unknown_strategy(self):
        """Test unknown strategy names are rejected."""
        router = StrategyRouter(_registry(A=RecordingDispatcher()))

        with pytest.raises(WarmupConfigurationError):
            router.route(5000, [WarmupTarget("f1", strategy="missing")])

    def test_unknown_default(self):
        """Test unknown default strategy is rejected."""
        with pytest.raises(WarmupConfigurationError):
            StrategyRouter(_registry(A=RecordingDispatcher()), default_strategy="missing")

    def test_no_targets(self):
        """Test routing nothing dispatches nothing."""
        a = RecordingDispatcher()
        router = StrategyRouter(_registry(A=a))

        assert router.route(5000, []) == {}
        assert a.calls == []

    def test_partition_order(self):
        """Test default bucket comes first, others in first-seen order."""
        a, b, c = RecordingDispatcher(), RecordingDispatcher(), RecordingDispatcher()
        router = StrategyRouter(_registry(A=a, B=b, C=c), default_strategy="A")

        buckets = router.partition(
            [
                WarmupTarget("f1", strategy="C"),
                WarmupTarget("f2", strategy="B"),
                WarmupTarget("f3"),
            ]
        )

        assert [bucket.name for bucket in buckets] == ["A", "C", "B"]
