"""
Warmup service
"""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from core.config import WarmupTargetConfig
from core.invoker.interface import BaseInvoker
from core.posthog_client import capture_exception
from core.warmup.exceptions import WarmupConfigurationError, WarmupError
from core.warmup.models import DeadlineProvider, WarmupTarget
from core.warmup.router import StrategyRouter

logger = logging.getLogger(__name__)


def targets_from_config(configs: Iterable[WarmupTargetConfig]) -> List[WarmupTarget]:
    """Convert configured targets, keeping the last declaration of a function alias"""
    targets: Dict[Tuple[str, Optional[str]], WarmupTarget] = {}
    for config in configs:
        targets[(config.name, config.alias)] = WarmupTarget(
            name=config.name,
            alias=config.alias,
            strategy=config.strategy,
            invocation_count=config.invocation_count,
            invocation_data=config.invocation_data,
        )
    return list(targets.values())


@dataclass
class WarmupRunReport:
    """Summary of a warmup run"""

    deadline_millis: int
    functions: int = 0
    invocations: int = 0
    failures: int = 0
    duration_ms: float = 0.0
    strategies: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "deadline_millis": self.deadline_millis,
            "functions": self.functions,
            "invocations": self.invocations,
            "failures": self.failures,
            "duration_ms": self.duration_ms,
            "strategies": self.strategies,
        }


class WarmupService:
    """Runs warmup for the configured functions, one run at a time"""

    def __init__(
        self,
        router: StrategyRouter,
        targets: Optional[Sequence[WarmupTarget]] = None,
        invoker: Optional[BaseInvoker] = None,
    ):
        self.router = router
        self.invoker = invoker
        self._targets = self.validate_targets(targets or [])
        self._lock = threading.Lock()

        logger.info(
            f"Registered functions to warmup: {[t.name for t in self._targets]} "
            f"(default strategy: {router.default_strategy})"
        )

    @property
    def targets(self) -> List[WarmupTarget]:
        return list(self._targets)

    def validate_targets(self, targets: Sequence[WarmupTarget]) -> List[WarmupTarget]:
        """Reject unknown strategies and repeated function aliases"""
        seen = set()
        for target in targets:
            if (target.name, target.alias) in seen:
                raise WarmupConfigurationError(
                    f"Function {target.name} is declared more than once"
                    + (f" with alias {target.alias}" if target.alias else "")
                )
            seen.add((target.name, target.alias))

            if target.strategy and not self.router.registry.is_registered(target.strategy):
                raise WarmupConfigurationError(
                    f"Unknown warmup strategy for function {target.name}: {target.strategy}"
                )
        return list(targets)

    def run(
        self,
        deadline: DeadlineProvider,
        targets: Optional[Sequence[WarmupTarget]] = None,
    ) -> WarmupRunReport:
        """
        Run one warmup round.

        Args:
            deadline: Source of the remaining time, read once
            targets: Functions to warm up (configured targets if None)

        Returns:
            WarmupRunReport

        Raises:
            WarmupError: If warmup failed
        """
        run_targets = self.validate_targets(targets) if targets is not None else self._targets

        with self._lock:
            remaining_millis = deadline.remaining_time_millis()
            report = WarmupRunReport(
                deadline_millis=remaining_millis,
                functions=len(run_targets),
            )

            if remaining_millis <= 0:
                logger.warning("Warmup deadline has already elapsed, skipping run")
                return report

            started = time.time()
            try:
                results = self.router.route(remaining_millis, run_targets)
            except WarmupError as e:
                logger.error(f"Warmup run failed: {e}")
                capture_exception(
                    e,
                    properties={
                        "functions": len(run_targets),
                        "deadline_millis": remaining_millis,
                    },
                )
                raise

            report.duration_ms = (time.time() - started) * 1000
            for strategy, outcomes in results.items():
                report.strategies[strategy] = len(outcomes)
                report.invocations += len(outcomes)
                report.failures += sum(1 for outcome in outcomes if not outcome.success)

            logger.info(
                f"Warmup run finished: {report.invocations} invocations, "
                f"{report.failures} failures in {report.duration_ms:.0f}ms"
            )
            return report

    def shutdown(self) -> None:
        """Cut pending inter-round waits short and release invoker resources"""
        registry = self.router.registry
        for name in registry.names():
            registry.get(name).wake()

        if self.invoker:
            self.invoker.shutdown()
