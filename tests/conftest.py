"""
Pytest configuration and fixtures for Lambda Warmup tests
"""

import os
import sys
import threading
from concurrent.futures import Future
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.invoker.interface import BaseInvoker  # noqa: E402
from core.invoker.models import InvocationResult  # noqa: E402


class FakeInvoker(BaseInvoker):
    """In-memory invoker resolving every invocation immediately."""

    def __init__(self):
        # function name -> bytes, or callable(function_name, payload) -> bytes
        self.responses = {}
        # function name -> exception raised while resolving the result
        self.result_errors = {}
        # function name -> exception raised while issuing the invocation
        self.issue_errors = {}

        self.calls = []
        self.shutdown_called = False
        self._lock = threading.Lock()

    def invoke(self, function_name, qualifier=None, payload=b""):
        with self._lock:
            self.calls.append((function_name, qualifier, payload))

        if function_name in self.result_errors:
            raise self.result_errors[function_name]

        response = self.responses.get(function_name, b"")
        if callable(response):
            response = response(function_name, payload)
        return InvocationResult(status_code=200, payload=response)

    def invoke_async(self, function_name, qualifier=None, payload=b""):
        if function_name in self.issue_errors:
            raise self.issue_errors[function_name]

        future = Future()
        try:
            future.set_result(self.invoke(function_name, qualifier, payload))
        except Exception as e:
            future.set_exception(e)
        return future

    def list_functions(self, marker=None):
        return [], None

    def list_aliases(self, function_name):
        return []

    def shutdown(self):
        self.shutdown_called = True

    def calls_for(self, function_name):
        """Recorded calls of one function"""
        return [call for call in self.calls if call[0] == function_name]


@pytest.fixture
def fake_invoker():
    """Invoker recording calls without network access."""
    return FakeInvoker()


@pytest.fixture
def make_settings():
    """Factory for settings isolated from the environment file."""
    from core.config import Settings

    def _make(**overrides):
        values = {
            "invocation_count": 8,
            "iteration_count": 1,
            "result_consumer_count": 2,
            "dont_wait_between_invocation_rounds": True,
            "drain_poll_interval_seconds": 0.01,
            "warmup_function_alias": None,
            "throw_error_on_failure": False,
            "targets": [],
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def settings(make_settings):
    """Default test settings."""
    return make_settings()


@pytest.fixture
def registry(settings, fake_invoker):
    """Registry with the built-in strategies."""
    from core.warmup.registry import build_default_registry

    return build_default_registry(settings, fake_invoker)


@pytest.fixture
def lambda_context():
    """Lambda runtime context with a fixed remaining time."""
    context = MagicMock()
    context.get_remaining_time_in_millis.return_value = 5000
    return context


@pytest.fixture
def api_key():
    """API key accepted by the service"""
    from core.config import get_settings

    return get_settings().api_key


@pytest.fixture
def auth_headers(api_key):
    """Authentication headers for API requests"""
    return {"X-API-Key": api_key}


@pytest.fixture
def warmup_service(registry, fake_invoker):
    """Warmup service over the fake invoker with one configured function."""
    from core.warmup.models import WarmupTarget
    from core.warmup.router import StrategyRouter
    from services.warmup_service import WarmupService

    return WarmupService(
        StrategyRouter(registry),
        targets=[WarmupTarget("orders-api")],
        invoker=fake_invoker,
    )


@pytest.fixture
def client(warmup_service):
    """FastAPI test client bound to the fake warmup service"""
    from main import app

    app.state.warmup_service = warmup_service
    yield TestClient(app)
    app.state.warmup_service = None
