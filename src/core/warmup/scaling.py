"""
Invocation Count Policies and Payload Builders

Decide how many concurrent warmup invocations a function receives
and what each invocation carries.
"""

import logging
import math
import random
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from .models import InvocationOutcome, WarmupTarget, now_millis

logger = logging.getLogger(__name__)

LATEST_REQUEST_TIME_FORMAT = "%Y-%m-%d %H:%M:%S.%f"

# Base wait the warmed function is expected to apply on its own
DEFAULT_WAIT_MILLIS = 100


class InvocationCountPolicy(ABC):
    """Decides per-function invocation counts for a dispatch round"""

    @abstractmethod
    def invocation_count_for(
        self, function_name: str, default_count: int, override_count: int
    ) -> int:
        """
        Get invocation count for a function.

        Args:
            function_name: Function to warm up
            default_count: Configured baseline count
            override_count: Per-function override, ignored when not positive

        Returns:
            Target invocation count for the function
        """
        pass

    @abstractmethod
    def ingest(self, outcomes: Iterable[InvocationOutcome]) -> None:
        """Consume outcomes of a finished dispatch run"""
        pass


class StaticCountPolicy(InvocationCountPolicy):
    """Uses the override when set, the baseline otherwise"""

    def invocation_count_for(
        self, function_name: str, default_count: int, override_count: int
    ) -> int:
        if override_count > 0:
            return override_count
        return default_count

    def ingest(self, outcomes: Iterable[InvocationOutcome]) -> None:
        pass


class AdaptiveScaler(StaticCountPolicy):
    """
    Scales invocation counts with the number of active function instances.

    Warmed functions may answer with a JSON body such as:

        {"instanceId": "9b3ba0d0-...", "lastRequestTime": 1501435587778}

    where lastRequestTime is the epoch millis of the latest real (non warmup)
    request served by that instance. The legacy form
    {"latestRequestTime": "2017-07-30 17:26:27.778"} is accepted as well.
    Instances that have not served real traffic within the idle time are
    considered gone.
    """

    def __init__(
        self,
        idle_time_millis: int = 30 * 60 * 1000,
        scale_factor: float = 2.0,
        disabled: bool = False,
    ):
        """
        Initialize adaptive scaler.

        Args:
            idle_time_millis: Age after which an instance sample expires
            scale_factor: Invocations per active instance
            disabled: Always use the static count when True
        """
        self.idle_time_millis = idle_time_millis
        self.scale_factor = scale_factor
        self.disabled = disabled

        # function name -> instance id -> last request time (epoch millis)
        self._activity: Dict[str, Dict[str, int]] = {}

    def activity(self, function_name: str) -> Dict[str, int]:
        """Copy of the activity samples of a function"""
        return dict(self._activity.get(function_name, {}))

    def record_activity(
        self, function_name: str, instance_id: str, last_request_time: int
    ) -> None:
        """Upsert an activity sample"""
        self._activity.setdefault(function_name, {})[instance_id] = last_request_time

    def invocation_count_for(
        self, function_name: str, default_count: int, override_count: int
    ) -> int:
        if self.disabled:
            count = super().invocation_count_for(function_name, default_count, override_count)
            logger.info(
                f"Calculated invocation count in standard way for function {function_name}: {count}"
            )
            return count

        samples = self._activity.get(function_name)
        if samples is None:
            count = super().invocation_count_for(function_name, default_count, override_count)
        else:
            self._evict_expired(samples, now_millis())
            active_instance_count = len(samples)
            logger.info(
                f"Detected active instance count for function {function_name}: "
                f"{active_instance_count}"
            )
            count = max(round(active_instance_count * self.scale_factor), 1)

        logger.info(
            f"Calculated invocation count by taking warmup scale factor into "
            f"consideration for function {function_name}: {count}"
        )
        return count

    def ingest(self, outcomes: Iterable[InvocationOutcome]) -> None:
        for outcome in outcomes:
            if not outcome.success or outcome.result is None:
                continue

            result = outcome.result
            if result.has_function_error:
                logger.error(
                    f"Warmup invocation for function {outcome.function_name} "
                    f"has returned with error: {result.error_message}"
                )
                continue

            try:
                body = result.json()
            except ValueError as e:
                logger.warning(
                    f"Ignoring malformed warmup response of function "
                    f"{outcome.function_name}: {e}"
                )
                continue

            if not isinstance(body, dict):
                continue

            instance_id = body.get("instanceId")
            last_request_time = self._parse_request_time(body)
            if instance_id is None or last_request_time is None or last_request_time <= 0:
                continue

            self.record_activity(outcome.function_name, str(instance_id), last_request_time)

        logger.info(f"Latest requests times of functions: {self._activity}")

        current_time = now_millis()
        for samples in self._activity.values():
            self._evict_expired(samples, current_time)

    def _parse_request_time(self, body: dict) -> Optional[int]:
        value = body.get("lastRequestTime")
        if value is None:
            value = body.get("latestRequestTime")
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, (int, float)):
            if not math.isfinite(value):
                logger.warning(f"Ignoring non-finite request time: {value}")
                return None
            return int(value)

        try:
            parsed = datetime.strptime(str(value), LATEST_REQUEST_TIME_FORMAT)
        except ValueError:
            logger.warning(f"Ignoring unparseable request time: {value}")
            return None
        return int(parsed.replace(tzinfo=timezone.utc).timestamp() * 1000)

    def _is_expired(self, current_time: int, last_request_time: int) -> bool:
        return current_time > last_request_time + self.idle_time_millis

    def _evict_expired(self, samples: Dict[str, int], current_time: int) -> None:
        expired = [
            instance_id
            for instance_id, last_request_time in samples.items()
            if self._is_expired(current_time, last_request_time)
        ]
        for instance_id in expired:
            del samples[instance_id]


class PayloadBuilder(ABC):
    """Builds request payloads of a dispatch round"""

    @abstractmethod
    def round_payloads(self, target: WarmupTarget, invocation_count: int) -> List[bytes]:
        """
        Build payloads for one round of a function.

        Args:
            target: Function being warmed up
            invocation_count: Invocations in this round

        Returns:
            One payload per invocation, in invocation order
        """
        pass


class StaticPayloadBuilder(PayloadBuilder):
    """Sends the configured invocation data, or an empty body"""

    def round_payloads(self, target: WarmupTarget, invocation_count: int) -> List[bytes]:
        payload = target.invocation_data.encode("utf-8") if target.invocation_data else b""
        return [payload] * invocation_count


class HoldPayloadBuilder(PayloadBuilder):
    """
    Sends `#warmup wait=<millis>` control messages.

    Every extra 10 concurrent invocations add 100ms to the wait on top of
    the function's own default. One randomly chosen invocation per round
    waits ten times longer to keep its instance busy while the others cycle.
    """

    def __init__(self, rng: Optional[random.Random] = None):
        self._random = rng or random.Random()

    def hold_invocation_no(self, invocation_count: int) -> int:
        """Pick the 1-based invocation number carrying the long wait"""
        return self._random.randint(1, max(invocation_count, 1))

    def round_payloads(self, target: WarmupTarget, invocation_count: int) -> List[bytes]:
        delay = DEFAULT_WAIT_MILLIS * (invocation_count // 10)
        hold_no = self.hold_invocation_no(invocation_count)

        payloads = []
        for invocation_no in range(1, invocation_count + 1):
            wait = delay * 10 if invocation_no == hold_no else delay
            payloads.append(f"#warmup wait={wait}".encode("utf-8"))
        return payloads
