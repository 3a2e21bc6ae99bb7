"""
Warmup Engine

Time-budgeted warmup dispatch for remote functions.
Keeps functions hot without occupying every instance, scaling effort per
function from the activity the functions report back.
"""

from .models import (
    WarmupTarget,
    IterationPlan,
    InvocationTask,
    InvocationOutcome,
    DeadlineProvider,
    FixedDeadline,
    LambdaContextDeadline,
)
from .collector import ResultCollector
from .scaling import (
    InvocationCountPolicy,
    StaticCountPolicy,
    AdaptiveScaler,
    PayloadBuilder,
    StaticPayloadBuilder,
    HoldPayloadBuilder,
)
from .dispatcher import InvocationDispatcher
from .registry import StrategyRegistry, build_default_registry
from .router import StrategyRouter
from .exceptions import (
    WarmupError,
    WarmupConfigurationError,
    DispatchIssueError,
    ResultRetrievalError,
    AggregateWarmupError,
    CompositeStrategyError,
)

__all__ = [
    # Models
    "WarmupTarget",
    "IterationPlan",
    "InvocationTask",
    "InvocationOutcome",
    "DeadlineProvider",
    "FixedDeadline",
    "LambdaContextDeadline",
    # Engine
    "ResultCollector",
    "InvocationCountPolicy",
    "StaticCountPolicy",
    "AdaptiveScaler",
    "PayloadBuilder",
    "StaticPayloadBuilder",
    "HoldPayloadBuilder",
    "InvocationDispatcher",
    "StrategyRegistry",
    "build_default_registry",
    "StrategyRouter",
    # Exceptions
    "WarmupError",
    "WarmupConfigurationError",
    "DispatchIssueError",
    "ResultRetrievalError",
    "AggregateWarmupError",
    "CompositeStrategyError",
]
