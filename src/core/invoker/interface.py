"""
Base Invoker Interface

Abstract base class for remote function invokers.
New invokers should inherit from BaseInvoker and implement all abstract methods.
"""

from abc import ABC, abstractmethod
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .models import InvocationResult


class BaseInvoker(ABC):
    """
    Abstract base class for all function invokers.

    All invokers must implement these methods:
    - invoke(): Invoke a function and wait for its response
    - invoke_async(): Invoke a function without blocking the caller
    - list_functions(): List deployed functions page by page
    - list_aliases(): List aliases of a function

    Example:
        class MyInvoker(BaseInvoker):
            def invoke(self, function_name, qualifier=None, payload=b""):
                # Implementation
                pass
    """

    @abstractmethod
    def invoke(
        self,
        function_name: str,
        qualifier: Optional[str] = None,
        payload: bytes = b"",
    ) -> "InvocationResult":
        """
        Invoke a function synchronously.

        Args:
            function_name: Name of the function to invoke
            qualifier: Alias or version to invoke
            payload: Raw request payload

        Returns:
            InvocationResult with status code and response payload

        Raises:
            InvokerError: When the invocation cannot be performed
        """
        pass

    @abstractmethod
    def invoke_async(
        self,
        function_name: str,
        qualifier: Optional[str] = None,
        payload: bytes = b"",
    ) -> "Future[InvocationResult]":
        """
        Invoke a function without waiting for its response.

        Returns:
            Future resolving to the InvocationResult
        """
        pass

    @abstractmethod
    def list_functions(
        self, marker: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], Optional[str]]:
        """
        List one page of deployed functions.

        Args:
            marker: Pagination marker returned by the previous call

        Returns:
            Tuple of (function descriptions, next marker or None)
        """
        pass

    @abstractmethod
    def list_aliases(self, function_name: str) -> List[str]:
        """List alias names of a function"""
        pass

    def shutdown(self) -> None:
        """
        Release resources held by this invoker.

        Override this method when the invoker owns threads or connections.
        """
        pass
