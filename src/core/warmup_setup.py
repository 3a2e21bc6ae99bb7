"""
Warmup Setup

Build the warmup service from settings.
"""

import logging
from typing import Optional

from .config import Settings, get_settings
from .invoker import BaseInvoker
from .invoker.providers import AWSLambdaInvoker
from .warmup import StrategyRouter, build_default_registry

logger = logging.getLogger(__name__)


def setup_warmup(settings: Settings = None, invoker: Optional[BaseInvoker] = None):
    """
    Set up the warmup service based on configuration.

    Args:
        settings: Settings instance (uses default if None)
        invoker: Invoker to use (AWS Lambda invoker from settings if None)

    Returns:
        Configured WarmupService

    Raises:
        WarmupConfigurationError: If settings or configured targets are invalid
    """
    from services.warmup_service import WarmupService, targets_from_config

    settings = settings or get_settings()

    if invoker is None:
        logger.info("Setting up AWS Lambda invoker")
        invoker = AWSLambdaInvoker(
            region=settings.aws_region,
            max_workers=settings.invoker_max_workers,
            max_retries=settings.aws_max_retries,
            connect_timeout=settings.aws_connect_timeout,
            read_timeout=settings.aws_read_timeout,
        )

    registry = build_default_registry(settings, invoker)
    router = StrategyRouter(registry)

    service = WarmupService(
        router,
        targets=targets_from_config(settings.targets),
        invoker=invoker,
    )

    logger.info(
        f"Warmup setup complete. Strategies: {registry.names()}, "
        f"default: {registry.get_default()}"
    )
    return service
