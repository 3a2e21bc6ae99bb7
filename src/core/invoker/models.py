"""
Invoker Data Models

Response models for remote function invocations.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class InvocationResult:
    """Result of a single function invocation"""

    status_code: int = 200
    payload: bytes = b""

    # Set by the platform when the function itself failed
    function_error: Optional[str] = None

    executed_version: Optional[str] = None
    log_result: Optional[str] = None

    @property
    def has_function_error(self) -> bool:
        """Whether the invoked function returned an error"""
        return bool(self.function_error)

    @property
    def text(self) -> str:
        """Payload decoded as UTF-8"""
        return self.payload.decode("utf-8") if self.payload else ""

    def json(self) -> Optional[Any]:
        """
        Decode payload as JSON.

        Returns:
            Decoded value, or None for an empty payload

        Raises:
            ValueError: If the payload is not valid JSON
        """
        text = self.text.strip()
        if not text:
            return None
        return json.loads(text)

    @property
    def error_message(self) -> Optional[str]:
        """Error message reported by the function, if any"""
        if not self.has_function_error:
            return None
        try:
            body = self.json()
        except ValueError:
            return self.function_error
        if isinstance(body, dict) and body.get("errorMessage"):
            return str(body["errorMessage"])
        return self.function_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging"""
        return {
            "status_code": self.status_code,
            "payload": self.text,
            "function_error": self.function_error,
            "executed_version": self.executed_version,
        }
