"""
Exceptions raised inside the invoice splitting engine.

Exception Hierarchy:
    SplitterError (base)
    ├── ModelInvocationError
    ├── MalformedResponseError
    ├── ValidationError
    └── PromptNotFoundError

Pairwise comparisons recover from these locally. The batch text path lets
them propagate, and the orchestrator converts anything that reaches it into
a single low-confidence group.
"""

from typing import Any, Dict, Optional


class SplitterError(Exception):
    """
    Base exception for all splitter errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ModelInvocationError(SplitterError):
    """Raised when the model or vision capability call itself fails."""

    def __init__(self, operation: str, reason: Optional[str] = None):
        message = f"Model call failed during {operation}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, {"operation": operation})


class MalformedResponseError(SplitterError):
    """Raised when a model response is not valid JSON or lacks required fields."""

    def __init__(self, reason: str, response_excerpt: Optional[str] = None):
        details = {"response_excerpt": response_excerpt} if response_excerpt else None
        super().__init__(f"Malformed model response: {reason}", details)


class ValidationError(SplitterError):
    """Raised when a parsed response or result breaks the partition contract."""
    pass


class PromptNotFoundError(SplitterError):
    """Raised when a prompt template name cannot be resolved."""

    def __init__(self, name: str):
        super().__init__(f"Prompt template not found: {name}", {"name": name})
