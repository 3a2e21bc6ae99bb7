"""
Strategy Router

Fans warmup targets out to their strategies and runs them concurrently.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import CompositeStrategyError
from .models import InvocationOutcome, WarmupTarget
from .registry import StrategyRegistry

logger = logging.getLogger(__name__)


@dataclass
class StrategyBucket:
    """Targets assigned to one strategy within a route call"""

    name: str
    dispatcher: Any
    targets: List[WarmupTarget] = field(default_factory=list)


class StrategyRouter:
    """
    Routes targets to their assigned strategies.

    Targets without a strategy, or assigned to the default strategy, are
    warmed by the default dispatcher. Every distinct dispatcher is driven by
    exactly one task per route call; all tasks run concurrently and are
    always awaited before any failure is raised.

    Concurrent route calls are not serialized here. Callers sharing a router
    across threads must serialize route calls themselves.
    """

    def __init__(self, registry: StrategyRegistry, default_strategy: Optional[str] = None):
        """
        Initialize router.

        Args:
            registry: Registry resolving strategy names
            default_strategy: Default strategy name (registry default if None)

        Raises:
            WarmupConfigurationError: If the default strategy is unknown
        """
        self.registry = registry
        self.default_strategy = default_strategy or registry.get_default()
        self.default_dispatcher = registry.get(self.default_strategy)

    def partition(self, targets: Sequence[WarmupTarget]) -> List[StrategyBucket]:
        """
        Group targets by resolved dispatcher.

        Returns:
            Non-empty buckets, default bucket first, others in first-seen order

        Raises:
            WarmupConfigurationError: If a target names an unknown strategy
        """
        default_bucket = StrategyBucket(self.default_strategy, self.default_dispatcher)
        buckets: Dict[int, StrategyBucket] = {}

        for target in targets:
            dispatcher = (
                self.registry.get(target.strategy) if target.strategy else self.default_dispatcher
            )
            if dispatcher is self.default_dispatcher:
                default_bucket.targets.append(target)
                continue

            bucket = buckets.get(id(dispatcher))
            if bucket is None:
                bucket = StrategyBucket(target.strategy, dispatcher)
                buckets[id(dispatcher)] = bucket
            bucket.targets.append(target)

        ordered = [default_bucket] if default_bucket.targets else []
        ordered.extend(buckets.values())
        return ordered

    def route(
        self, deadline_millis: int, targets: Sequence[WarmupTarget]
    ) -> Dict[str, List[InvocationOutcome]]:
        """
        Warm up targets with their strategies.

        Args:
            deadline_millis: Remaining time budget in milliseconds
            targets: Functions to warm up

        Returns:
            Outcomes per strategy name

        Raises:
            CompositeStrategyError: If any strategy failed, after all finished
        """
        buckets = self.partition(targets)
        if not buckets:
            logger.info("No functions to warmup")
            return {}

        logger.info(
            "Routing warmup to strategies: "
            + ", ".join(f"{b.name} ({len(b.targets)} functions)" for b in buckets)
        )

        results: Dict[str, List[InvocationOutcome]] = {}
        errors: List[BaseException] = []

        with ThreadPoolExecutor(
            max_workers=len(buckets),
            thread_name_prefix="warmup-strategy",
        ) as pool:
            futures = [
                (bucket, pool.submit(bucket.dispatcher.dispatch, deadline_millis, bucket.targets))
                for bucket in buckets
            ]

            for bucket, future in futures:
                try:
                    results[bucket.name] = future.result()
                except Exception as e:
                    logger.error(f"Warmup with strategy {bucket.name} failed: {e}")
                    errors.append(e)

        if errors:
            raise CompositeStrategyError(errors)

        return results
