"""
Invoker Providers

Available invoker implementations.
"""

from .aws_lambda import AWSLambdaInvoker

__all__ = [
    "AWSLambdaInvoker",
]
