"""
AWS Lambda entry point

Scheduled warmup runs bounded by the remaining time of the invocation.
"""
import logging

from core.config import get_settings
from core.posthog_client import PostHogClient
from core.warmup import LambdaContextDeadline
from core.warmup_setup import setup_warmup

# The Lambda runtime installs its own root handler
logging.getLogger().setLevel(logging.INFO)
logger = logging.getLogger(__name__)

# Reused across invocations of a warm container
_service = None


def get_service():
    """Get the warmup service, building it on first use"""
    global _service

    if _service is None:
        settings = get_settings()
        PostHogClient.initialize(settings.posthog_api_key, settings.posthog_host)
        _service = setup_warmup(settings)
    return _service


def handler(event, context):
    """Lambda handler"""
    logger.info(f"Warmup triggered by event: {event}")

    report = get_service().run(LambdaContextDeadline(context))
    return report.to_dict()
