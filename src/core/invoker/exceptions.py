"""
Invoker Exceptions

Custom exceptions for invoker operations.
"""

from typing import Optional


class InvokerError(Exception):
    """Base exception for invoker errors"""

    def __init__(
        self,
        message: str,
        function_name: Optional[str] = None,
        error_code: Optional[str] = None,
    ):
        self.message = message
        self.function_name = function_name
        self.error_code = error_code
        super().__init__(message)


class FunctionNotFoundError(InvokerError):
    """Raised when the function to invoke does not exist"""

    def __init__(self, function_name: str, qualifier: Optional[str] = None):
        self.qualifier = qualifier
        target = f"{function_name}:{qualifier}" if qualifier else function_name
        super().__init__(
            f"Function not found: {target}",
            function_name=function_name,
            error_code="ResourceNotFoundException",
        )
