"""
Invocation Dispatcher

Time-sliced warmup loop issuing concurrent invocations per function.
"""

import logging
import random
import threading
import time
from typing import List, Optional, Sequence

from ..config import Settings
from ..invoker.interface import BaseInvoker
from ..metrics import WARMUP_DISPATCH_SECONDS, WARMUP_INVOCATIONS, WARMUP_RUNS
from .collector import ResultCollector
from .exceptions import (
    AggregateWarmupError,
    DispatchIssueError,
    WarmupConfigurationError,
)
from .models import (
    DispatchState,
    InvocationOutcome,
    InvocationTask,
    IterationPlan,
    WarmupTarget,
    now_millis,
)
from .scaling import (
    InvocationCountPolicy,
    PayloadBuilder,
    StaticCountPolicy,
    StaticPayloadBuilder,
)

logger = logging.getLogger(__name__)


class InvocationDispatcher:
    """
    Warms up functions incrementally with randomized invocation counts.

    The remaining time is split into iterations. Every iteration invokes each
    function concurrently, ramping up to the baseline count at the final
    iteration. Counts are randomized down for recently warmed functions so
    that some instances stay free for real traffic.

    Count computation and payload content are delegated to the injected
    InvocationCountPolicy and PayloadBuilder.

    Example:
        dispatcher = InvocationDispatcher(
            "standard", settings, invoker,
            count_policy=StaticCountPolicy(),
            payload_builder=StaticPayloadBuilder(),
        )
        outcomes = dispatcher.dispatch(60000, [WarmupTarget("orders-api")])
    """

    def __init__(
        self,
        name: str,
        settings: Settings,
        invoker: BaseInvoker,
        count_policy: Optional[InvocationCountPolicy] = None,
        payload_builder: Optional[PayloadBuilder] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize dispatcher.

        Args:
            name: Strategy name this dispatcher is registered under
            settings: Dispatch settings
            invoker: Invoker issuing the warmup invocations
            count_policy: Per-function count policy (static if None)
            payload_builder: Payload builder (static if None)
            rng: Random source for count randomization

        Raises:
            WarmupConfigurationError: If counts in settings are not positive
        """
        if settings.iteration_count <= 0:
            raise WarmupConfigurationError(
                f"iteration_count must be positive, got {settings.iteration_count}",
                strategy=name,
            )
        if settings.invocation_count <= 0:
            raise WarmupConfigurationError(
                f"invocation_count must be positive, got {settings.invocation_count}",
                strategy=name,
            )
        if settings.result_consumer_count <= 0:
            raise WarmupConfigurationError(
                f"result_consumer_count must be positive, got {settings.result_consumer_count}",
                strategy=name,
            )

        self.name = name
        self.invoker = invoker
        self.count_policy = count_policy or StaticCountPolicy()
        self.payload_builder = payload_builder or StaticPayloadBuilder()

        self.invocation_count = settings.invocation_count
        self.result_consumer_count = settings.result_consumer_count
        self.iteration_count = settings.iteration_count
        self.split_iterations = settings.enable_split_iterations
        self.randomization_bypass_interval_millis = settings.randomization_bypass_interval_millis
        self.disable_randomization = settings.disable_randomization
        self.warmup_function_alias = settings.warmup_function_alias or None
        self.throw_error_on_failure = settings.throw_error_on_failure
        self.dont_wait_between_invocation_rounds = settings.dont_wait_between_invocation_rounds
        self.drain_poll_interval = settings.drain_poll_interval_seconds

        self._state = DispatchState()
        self._random = rng or random.Random()
        self._wake_event = threading.Event()

    @property
    def cursor(self) -> int:
        """Iteration index executed by the next split-iteration call"""
        return self._state.cursor

    def wake(self) -> None:
        """Cut the current inter-round wait short"""
        self._wake_event.set()

    def dispatch(
        self, deadline_millis: int, targets: Sequence[WarmupTarget]
    ) -> List[InvocationOutcome]:
        """
        Run warmup iterations for the given functions.

        Args:
            deadline_millis: Remaining time budget in milliseconds
            targets: Functions to warm up, in dispatch order

        Returns:
            Outcomes of every issued invocation

        Raises:
            AggregateWarmupError: If any invocation failed and
                throw_error_on_failure is False
        """
        targets = list(targets)
        if not targets:
            logger.info(f"No functions to warmup with {self.name} strategy")
            return []

        plan = IterationPlan.build(deadline_millis, self.invocation_count, self.iteration_count)

        logger.info(f"Default invocation count per function: {plan.baseline_count}")
        logger.info(f"Iteration count: {plan.iteration_count}")

        collector = ResultCollector(
            worker_count=self.result_consumer_count,
            poll_interval=self.drain_poll_interval,
            name=self.name,
        )
        self._wake_event.clear()
        started = time.monotonic()

        try:
            collector.start()
            self._run_iterations(plan, targets, collector)

            logger.info("Started waiting for invocations results ...")
            collector.await_drain()
            outcomes = collector.outcomes
        finally:
            collector.stop()
            if self.split_iterations:
                self._state.cursor = (self._state.cursor + 1) % plan.iteration_count
            WARMUP_DISPATCH_SECONDS.labels(self.name).observe(time.monotonic() - started)

        self._record_metrics(outcomes)
        self.count_policy.ingest(outcomes)
        self._handle_failures(outcomes)

        logger.info("Finished waiting for invocations results")
        return outcomes

    def _run_iterations(
        self,
        plan: IterationPlan,
        targets: List[WarmupTarget],
        collector: ResultCollector,
    ) -> None:
        start_index = self._state.cursor if self.split_iterations else 0

        logger.info("Starting iterations to warmup ...")

        for index in range(start_index, plan.iteration_count):
            round_started = time.monotonic()
            logger.info(f"Iteration round {index + 1} ...")

            for target in targets:
                self._dispatch_target(plan, index, target, collector)

            if self.split_iterations:
                break

            # No need to wait after the last round
            if not plan.is_last(index) and not self.dont_wait_between_invocation_rounds:
                elapsed_millis = int((time.monotonic() - round_started) * 1000)
                self._pace(plan.slice_millis - elapsed_millis)

        logger.info("Finished iterations to warmup")

    def _dispatch_target(
        self,
        plan: IterationPlan,
        index: int,
        target: WarmupTarget,
        collector: ResultCollector,
    ) -> None:
        running_count = plan.running_count(index)

        if self._should_randomize(target.name):
            running_count = self._randomize(running_count, plan.per_iteration_count)

        function_count = self.count_policy.invocation_count_for(
            target.name, plan.baseline_count, target.invocation_count
        )
        if function_count > 0:
            running_count = round(running_count * function_count / plan.baseline_count)

        running_count = max(running_count, 1)

        alias = target.alias or self.warmup_function_alias
        if alias:
            logger.info(
                f"Invoking function {target.name} with alias '{alias}' "
                f"to warmup for {running_count} times ..."
            )
        else:
            logger.info(f"Invoking function {target.name} to warmup for {running_count} times ...")

        payloads = self.payload_builder.round_payloads(target, running_count)
        iteration_no = index + 1

        for invocation_no in range(1, running_count + 1):
            logger.debug(f"Invocation round {invocation_no} ...")
            try:
                handle = self.invoker.invoke_async(
                    target.name, alias, payloads[invocation_no - 1]
                )
            except Exception as e:
                logger.error(
                    f"Issuing invocation {invocation_no} at iteration {iteration_no} "
                    f"for function {target.name} has failed: {e}"
                )
                collector.record(
                    InvocationOutcome(
                        iteration_no=iteration_no,
                        invocation_no=invocation_no,
                        function_name=target.name,
                        error=DispatchIssueError(iteration_no, invocation_no, target.name, e),
                        qualifier=alias,
                    )
                )
                continue

            collector.submit(
                InvocationTask(
                    iteration_no=iteration_no,
                    invocation_no=invocation_no,
                    function_name=target.name,
                    handle=handle,
                    qualifier=alias,
                )
            )

        self._state.last_dispatch_times.setdefault(target.name, now_millis())

    def _should_randomize(self, function_name: str) -> bool:
        """First dispatch, or one after a long pause, is never randomized"""
        call_time = self._state.last_dispatch_times.get(function_name)
        if call_time is None or now_millis() - call_time > self.randomization_bypass_interval_millis:
            self._state.last_dispatch_times.pop(function_name, None)
            return False
        return not self.disable_randomization

    def _randomize(self, running_count: int, per_iteration_count: int) -> int:
        jitter_bound = per_iteration_count // 2
        if jitter_bound <= 0:
            return running_count
        return running_count - self._random.randrange(jitter_bound)

    def _pace(self, wait_millis: int) -> None:
        if wait_millis <= 0:
            return

        logger.info(f"Sleeping {wait_millis} millis for next iteration ...")
        if self._wake_event.wait(wait_millis / 1000):
            self._wake_event.clear()
            logger.info("Woken up before next iteration, continuing")

    def _record_metrics(self, outcomes: List[InvocationOutcome]) -> None:
        failed = sum(1 for outcome in outcomes if not outcome.success)
        succeeded = len(outcomes) - failed

        if succeeded:
            WARMUP_INVOCATIONS.labels(self.name, "success").inc(succeeded)
        if failed:
            WARMUP_INVOCATIONS.labels(self.name, "failure").inc(failed)
        WARMUP_RUNS.labels(self.name, "failure" if failed else "success").inc()

    def _handle_failures(self, outcomes: List[InvocationOutcome]) -> None:
        failures = [
            outcome.error
            for outcome in sorted(outcomes, key=lambda o: o.key)
            if not outcome.success
        ]
        if not failures:
            return

        error = AggregateWarmupError(failures, strategy=self.name)

        # throw_error_on_failure=True only logs, False raises
        if self.throw_error_on_failure:
            logger.error(error.message)
        else:
            raise error
