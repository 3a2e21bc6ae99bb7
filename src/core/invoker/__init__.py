"""
Invoker Abstraction Layer

Transport-agnostic interface for invoking remote functions.
"""

from .interface import BaseInvoker
from .models import InvocationResult
from .exceptions import InvokerError, FunctionNotFoundError

__all__ = [
    # Interface
    "BaseInvoker",
    # Models
    "InvocationResult",
    # Exceptions
    "InvokerError",
    "FunctionNotFoundError",
]
