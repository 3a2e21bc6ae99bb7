"""
Warmup Data Models

Targets, iteration plans and invocation bookkeeping.
"""

import time
from abc import ABC, abstractmethod
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from ..invoker.models import InvocationResult

OutcomeKey = Tuple[int, int, str, str]


def now_millis() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


@dataclass(frozen=True)
class WarmupTarget:
    """Function to keep warm"""

    name: str
    alias: Optional[str] = None

    # Name of the assigned strategy, None for the router default
    strategy: Optional[str] = None

    # Invocation count override, ignored when not positive
    invocation_count: int = 0

    invocation_data: Optional[str] = None

    def __post_init__(self):
        if not self.name:
            raise ValueError("name cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "name": self.name,
            "alias": self.alias,
            "strategy": self.strategy,
            "invocation_count": self.invocation_count,
            "invocation_data": self.invocation_data,
        }


@dataclass(frozen=True)
class IterationPlan:
    """Time and invocation budget of one dispatch call"""

    deadline_millis: int
    iteration_count: int
    slice_millis: int
    baseline_count: int
    per_iteration_count: int
    leftover_count: int

    @classmethod
    def build(
        cls, deadline_millis: int, baseline_count: int, iteration_count: int
    ) -> "IterationPlan":
        """Split the deadline and the baseline count across iterations"""
        if iteration_count <= 0:
            raise ValueError("iteration_count must be positive")

        per_iteration_count = baseline_count // iteration_count
        return cls(
            deadline_millis=deadline_millis,
            iteration_count=iteration_count,
            slice_millis=deadline_millis // iteration_count,
            baseline_count=baseline_count,
            per_iteration_count=per_iteration_count,
            leftover_count=baseline_count - per_iteration_count * iteration_count,
        )

    def is_last(self, iteration_index: int) -> bool:
        return iteration_index == self.iteration_count - 1

    def running_count(self, iteration_index: int) -> int:
        """Cumulative planned count through the given 0-based iteration"""
        count = (iteration_index + 1) * self.per_iteration_count
        if self.is_last(iteration_index):
            count += self.leftover_count
        return min(count, self.baseline_count)


@dataclass
class InvocationTask:
    """Pending warmup invocation"""

    iteration_no: int
    invocation_no: int
    function_name: str
    handle: "Future[InvocationResult]"
    qualifier: Optional[str] = None

    @property
    def key(self) -> OutcomeKey:
        return (self.iteration_no, self.invocation_no, self.function_name, self.qualifier or "")


@dataclass(frozen=True)
class InvocationOutcome:
    """Terminal result of a warmup invocation"""

    iteration_no: int
    invocation_no: int
    function_name: str
    result: Optional[InvocationResult] = None
    error: Optional[Exception] = None
    qualifier: Optional[str] = None

    @property
    def key(self) -> OutcomeKey:
        return (self.iteration_no, self.invocation_no, self.function_name, self.qualifier or "")

    @property
    def success(self) -> bool:
        return self.error is None


@dataclass
class DispatchState:
    """Dispatcher state kept between dispatch calls"""

    # function name -> first dispatch time (epoch millis) of the current window
    last_dispatch_times: Dict[str, int] = field(default_factory=dict)

    # next iteration index in split-iteration mode
    cursor: int = 0


class DeadlineProvider(ABC):
    """Source of the remaining execution time of a warmup run"""

    @abstractmethod
    def remaining_time_millis(self) -> int:
        pass


class FixedDeadline(DeadlineProvider):
    """Deadline counted down from construction time"""

    def __init__(self, budget_millis: int):
        self.budget_millis = budget_millis
        self._started = time.monotonic()

    def remaining_time_millis(self) -> int:
        elapsed = int((time.monotonic() - self._started) * 1000)
        return max(self.budget_millis - elapsed, 0)


class LambdaContextDeadline(DeadlineProvider):
    """Deadline read from an AWS Lambda runtime context"""

    def __init__(self, context: Any):
        self.context = context

    def remaining_time_millis(self) -> int:
        return int(self.context.get_remaining_time_in_millis())
