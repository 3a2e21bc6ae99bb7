"""
Warmup Exceptions

Custom exceptions for warmup operations.
"""

from typing import List, Optional, Sequence


class WarmupError(Exception):
    """Base exception for warmup errors"""

    def __init__(self, message: str, strategy: Optional[str] = None):
        self.message = message
        self.strategy = strategy
        super().__init__(message)


class WarmupConfigurationError(WarmupError):
    """Raised when warmup configuration is invalid"""


class InvocationError(WarmupError):
    """Base class for a single failed warmup invocation"""

    def __init__(
        self,
        message: str,
        iteration_no: int,
        invocation_no: int,
        function_name: str,
        cause: Optional[BaseException] = None,
    ):
        self.iteration_no = iteration_no
        self.invocation_no = invocation_no
        self.function_name = function_name
        self.cause = cause
        super().__init__(message)


class DispatchIssueError(InvocationError):
    """Raised when issuing a warmup invocation fails"""

    def __init__(
        self,
        iteration_no: int,
        invocation_no: int,
        function_name: str,
        cause: BaseException,
    ):
        super().__init__(
            f"Issuing invocation failed: {cause}",
            iteration_no=iteration_no,
            invocation_no=invocation_no,
            function_name=function_name,
            cause=cause,
        )


class ResultRetrievalError(InvocationError):
    """Raised when resolving a pending invocation result fails"""

    def __init__(
        self,
        iteration_no: int,
        invocation_no: int,
        function_name: str,
        cause: BaseException,
    ):
        super().__init__(
            f"Retrieving invocation result failed: {cause}",
            iteration_no=iteration_no,
            invocation_no=invocation_no,
            function_name=function_name,
            cause=cause,
        )


class AggregateWarmupError(WarmupError):
    """Raised once per dispatch run when any invocation failed"""

    def __init__(
        self,
        failures: Sequence[InvocationError],
        strategy: Optional[str] = None,
    ):
        self.failures: List[InvocationError] = list(failures)
        super().__init__(self._format(self.failures), strategy=strategy)

    @staticmethod
    def _format(failures: Sequence[InvocationError]) -> str:
        lines = ["[ERRORS]"]
        for index, failure in enumerate(failures, start=1):
            lines.append(f"\t- Error [{index}]")
            lines.append(f"\t\t- Iteration  No: {failure.iteration_no}")
            lines.append(f"\t\t- Invocation No: {failure.invocation_no}")
            lines.append(f"\t\t- Function Name: {failure.function_name}")
            lines.append(f"\t\t- Error        : {failure.cause}")
        return "\n".join(lines)


class CompositeStrategyError(WarmupError):
    """Raised by the router when any strategy bucket failed"""

    def __init__(self, errors: Sequence[BaseException]):
        self.errors: List[BaseException] = list(errors)
        details = "; ".join(
            f"[{index}] {type(error).__name__}: {error}"
            for index, error in enumerate(self.errors, start=1)
        )
        super().__init__(
            f"Error occurred while warmup! {len(self.errors)} strategy error(s): {details}"
        )
