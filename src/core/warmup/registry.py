"""
Warmup Strategy Registry

Explicit name -> dispatcher registry, built once at startup.
"""

import logging
from typing import Dict, List, Optional

from ..config import Settings
from ..invoker.interface import BaseInvoker
from .dispatcher import InvocationDispatcher
from .exceptions import WarmupConfigurationError
from .scaling import (
    AdaptiveScaler,
    HoldPayloadBuilder,
    StaticCountPolicy,
    StaticPayloadBuilder,
)

logger = logging.getLogger(__name__)

STANDARD_STRATEGY = "standard"
STAT_AWARE_STRATEGY = "stat-aware"


class StrategyRegistry:
    """
    Registry of warmup strategies.

    Manages strategy registration, lookup and the default strategy.

    Example:
        registry = StrategyRegistry()
        registry.register("standard", standard_dispatcher)
        registry.register("stat-aware", stat_aware_dispatcher)
        registry.set_default("standard")

        dispatcher = registry.get("stat-aware")
    """

    def __init__(self):
        self._dispatchers: Dict[str, InvocationDispatcher] = {}
        self._default: Optional[str] = None

    def register(self, name: str, dispatcher: InvocationDispatcher) -> None:
        """
        Register a dispatcher under a strategy name.

        Args:
            name: Strategy name
            dispatcher: Dispatcher instance
        """
        self._dispatchers[name] = dispatcher
        if self._default is None:
            self._default = name
        logger.info(f"Registered warmup strategy: {name}")

    def unregister(self, name: str) -> None:
        """
        Unregister a strategy.

        Args:
            name: Strategy to unregister
        """
        if name in self._dispatchers:
            del self._dispatchers[name]
            if self._default == name:
                self._default = None
            logger.info(f"Unregistered warmup strategy: {name}")

    def get(self, name: Optional[str] = None) -> InvocationDispatcher:
        """
        Get dispatcher for a strategy.

        Args:
            name: Strategy name (uses default if None)

        Returns:
            InvocationDispatcher instance

        Raises:
            WarmupConfigurationError: If strategy not registered
        """
        target = name or self._default

        if target is None or target not in self._dispatchers:
            raise WarmupConfigurationError(f"Unknown warmup strategy: {target}")

        return self._dispatchers[target]

    def get_or_none(self, name: str) -> Optional[InvocationDispatcher]:
        """Get dispatcher for a strategy, returning None if not found"""
        return self._dispatchers.get(name)

    def set_default(self, name: str) -> None:
        """
        Set default strategy.

        Raises:
            WarmupConfigurationError: If strategy not registered
        """
        if name not in self._dispatchers:
            raise WarmupConfigurationError(f"Unknown warmup strategy: {name}")
        self._default = name
        logger.info(f"Set default warmup strategy: {name}")

    def get_default(self) -> Optional[str]:
        """Get current default strategy name"""
        return self._default

    def default_dispatcher(self) -> InvocationDispatcher:
        """Get dispatcher of the default strategy"""
        return self.get()

    def names(self) -> List[str]:
        """Get registered strategy names"""
        return list(self._dispatchers.keys())

    def is_registered(self, name: str) -> bool:
        """Check if strategy is registered"""
        return name in self._dispatchers


def build_default_registry(settings: Settings, invoker: BaseInvoker) -> StrategyRegistry:
    """
    Build registry with the built-in strategies.

    - standard: configured counts, configured invocation data as payload
    - stat-aware: counts scaled by active instances, wait hints as payload

    Args:
        settings: Settings shared by both dispatchers
        invoker: Invoker used by both dispatchers

    Returns:
        Registry with settings.warmup_strategy as default

    Raises:
        WarmupConfigurationError: If the default strategy is unknown or settings are invalid
    """
    registry = StrategyRegistry()

    registry.register(
        STANDARD_STRATEGY,
        InvocationDispatcher(
            STANDARD_STRATEGY,
            settings,
            invoker,
            count_policy=StaticCountPolicy(),
            payload_builder=StaticPayloadBuilder(),
        ),
    )
    registry.register(
        STAT_AWARE_STRATEGY,
        InvocationDispatcher(
            STAT_AWARE_STRATEGY,
            settings,
            invoker,
            count_policy=AdaptiveScaler(
                idle_time_millis=settings.function_instance_idle_time_millis,
                scale_factor=settings.warmup_scale_factor,
                disabled=settings.disable_warmup_scale,
            ),
            payload_builder=HoldPayloadBuilder(),
        ),
    )

    registry.set_default(settings.warmup_strategy)
    return registry
