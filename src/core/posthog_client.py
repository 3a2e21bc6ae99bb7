"""
PostHog reporting of failed warmup runs
"""

import logging
from typing import Any, Dict, List, Optional

from posthog import Posthog

logger = logging.getLogger(__name__)

DISTINCT_ID = "lambda-warmup"


def describe_failure(error: Exception) -> Dict[str, Any]:
    """
    Build event properties for a failed warmup run.

    Composite router errors are unfolded into the failing strategies and
    the number of failed invocations each one reported.
    """
    sub_errors: List[BaseException] = list(getattr(error, "errors", None) or [error])

    strategies = []
    failed_invocations = 0
    for sub_error in sub_errors:
        strategy = getattr(sub_error, "strategy", None)
        if strategy:
            strategies.append(strategy)
        failed_invocations += len(getattr(sub_error, "failures", []))

    return {
        "error_type": type(error).__name__,
        "error_message": str(error),
        "strategies": strategies,
        "strategy_errors": len(sub_errors),
        "failed_invocations": failed_invocations,
        "service": DISTINCT_ID,
    }


class PostHogClient:
    """Process-wide PostHog client, disabled until initialized with a key"""

    _instance: Optional[Posthog] = None

    @classmethod
    def initialize(cls, api_key: Optional[str], api_host: Optional[str] = None) -> None:
        if not api_key or not api_host:
            logger.info("PostHog API key or host not configured. Failure reporting disabled.")
            cls._instance = None
            return

        cls._instance = Posthog(project_api_key=api_key, host=api_host, on_error=cls._on_error)
        logger.info(f"PostHog failure reporting enabled (host: {api_host})")

    @classmethod
    def is_enabled(cls) -> bool:
        return cls._instance is not None

    @staticmethod
    def _on_error(error: Exception, items: Any) -> None:
        logger.error(f"PostHog client error: {error}")

    @classmethod
    def capture_warmup_failure(
        cls, error: Exception, properties: Optional[Dict[str, Any]] = None
    ) -> None:
        """Send a failed warmup run as a PostHog exception event"""
        if not cls.is_enabled():
            return

        event_properties = describe_failure(error)
        if properties:
            event_properties.update(properties)

        try:
            cls._instance.capture(
                distinct_id=DISTINCT_ID,
                event="$exception",
                properties=event_properties,
            )
            # Lambda containers may freeze right after the run
            cls._instance.flush()
        except Exception as e:
            logger.error(f"Failed to report warmup failure to PostHog: {e}")

    @classmethod
    def shutdown(cls) -> None:
        if cls._instance is None:
            return
        try:
            cls._instance.shutdown()
        except Exception as e:
            logger.error(f"Error shutting down PostHog client: {e}")
        finally:
            cls._instance = None


def capture_exception(error: Exception, properties: Optional[Dict[str, Any]] = None) -> None:
    """Report a failed warmup run to PostHog when configured"""
    PostHogClient.capture_warmup_failure(error, properties)
