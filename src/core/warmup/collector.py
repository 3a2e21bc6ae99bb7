"""
Invocation Result Collector

Background workers resolving pending warmup invocations.
"""

import logging
import queue
import threading
from typing import Dict, List, Optional

from .exceptions import ResultRetrievalError, WarmupConfigurationError
from .models import InvocationOutcome, InvocationTask, OutcomeKey

logger = logging.getLogger(__name__)


class ResultCollector:
    """
    Fixed pool of worker threads draining pending invocation handles.

    Workers take tasks from a shared queue, block on each handle and
    record an InvocationOutcome. Resolution failures are recorded as
    outcomes and never escape a worker.

    Example:
        collector = ResultCollector(worker_count=4)
        collector.start()

        collector.submit(task)

        collector.await_drain()
        collector.stop()
        outcomes = collector.outcomes
    """

    def __init__(
        self,
        worker_count: int,
        poll_interval: float = 1.0,
        name: str = "warmup",
    ):
        """
        Initialize result collector.

        Args:
            worker_count: Number of worker threads
            poll_interval: Seconds between outstanding-count checks while draining
            name: Prefix for worker thread names
        """
        if worker_count <= 0:
            raise WarmupConfigurationError("worker_count must be positive")
        if poll_interval <= 0:
            raise WarmupConfigurationError("poll_interval must be positive")

        self.worker_count = worker_count
        self.poll_interval = poll_interval
        self.name = name

        self._queue: "queue.Queue[Optional[InvocationTask]]" = queue.Queue()
        self._outcomes: Dict[OutcomeKey, InvocationOutcome] = {}
        self._outstanding = 0

        # Guards outstanding count and outcomes
        self._lock = threading.Lock()
        self._drained = threading.Condition(self._lock)

        self._stop_event = threading.Event()
        self._workers: List[threading.Thread] = []

    @property
    def outstanding(self) -> int:
        """Submitted tasks not resolved yet"""
        with self._lock:
            return self._outstanding

    @property
    def outcomes(self) -> List[InvocationOutcome]:
        """Snapshot of recorded outcomes"""
        with self._lock:
            return list(self._outcomes.values())

    @property
    def running(self) -> bool:
        return bool(self._workers) and not self._stop_event.is_set()

    def start(self) -> None:
        """Start worker threads"""
        if self._workers:
            return

        for index in range(self.worker_count):
            worker = threading.Thread(
                target=self._consume,
                name=f"{self.name}-result-consumer-{index + 1}",
                daemon=True,
            )
            worker.start()
            self._workers.append(worker)

        logger.debug(f"Started {self.worker_count} result consumers for {self.name}")

    def submit(self, task: InvocationTask) -> None:
        """Queue a pending invocation for resolution"""
        if self._stop_event.is_set():
            raise RuntimeError("Result collector is stopped")

        with self._lock:
            self._outstanding += 1
        self._queue.put(task)

    def record(self, outcome: InvocationOutcome) -> None:
        """Record an outcome that never reached the queue"""
        with self._lock:
            self._outcomes[outcome.key] = outcome

    def await_drain(self) -> None:
        """Block until every submitted task is resolved"""
        with self._drained:
            while self._outstanding > 0:
                # Bounded waits keep the caller responsive to interruption
                self._drained.wait(timeout=self.poll_interval)

    def stop(self) -> None:
        """Signal workers to exit and discard queued tasks"""
        if self._stop_event.is_set():
            return

        self._stop_event.set()

        discarded = 0
        while True:
            try:
                task = self._queue.get_nowait()
            except queue.Empty:
                break
            if task is not None:
                discarded += 1

        if discarded:
            with self._lock:
                self._outstanding -= discarded
                self._drained.notify_all()
            logger.warning(f"Discarded {discarded} unresolved invocations for {self.name}")

        for _ in self._workers:
            self._queue.put(None)

        self._workers.clear()
        logger.debug(f"Stopped result consumers for {self.name}")

    def _consume(self) -> None:
        """Worker loop"""
        while not self._stop_event.is_set():
            task = self._queue.get()
            if task is None:
                break
            if self._stop_event.is_set():
                break

            self._complete(self._resolve(task))

    def _resolve(self, task: InvocationTask) -> InvocationOutcome:
        try:
            result = task.handle.result()
        except Exception as e:
            logger.error(
                f"Retrieving invocation result has failed at iteration {task.iteration_no} "
                f"and invocation {task.invocation_no} for function {task.function_name}: {e}"
            )
            return InvocationOutcome(
                iteration_no=task.iteration_no,
                invocation_no=task.invocation_no,
                function_name=task.function_name,
                qualifier=task.qualifier,
                error=ResultRetrievalError(
                    task.iteration_no, task.invocation_no, task.function_name, e
                ),
            )

        logger.debug(
            f"Invocation result has been successfully retrieved at iteration "
            f"{task.iteration_no} and invocation {task.invocation_no} "
            f"for function {task.function_name}: {result.to_dict()}"
        )
        return InvocationOutcome(
            iteration_no=task.iteration_no,
            invocation_no=task.invocation_no,
            function_name=task.function_name,
            result=result,
            qualifier=task.qualifier,
        )

    def _complete(self, outcome: InvocationOutcome) -> None:
        with self._drained:
            self._outcomes[outcome.key] = outcome
            self._outstanding -= 1
            if self._outstanding <= 0:
                self._drained.notify_all()
