"""
Exception hierarchy and error helpers for ssrbridge.

Provides:
- A base exception carrying an error code, category and details
- Transport errors raised by the bridge client (spawn, exit, timeout, framing)
- Message extraction for arbitrary exceptions raised by bundle code
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Error categories for classification."""
    RECOVERABLE = "recoverable"
    RETRYABLE = "retryable"
    FATAL = "fatal"
    VALIDATION = "validation"
    TIMEOUT = "timeout"


class SsrBridgeError(Exception):
    """Base exception for all ssrbridge errors."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        category: ErrorCategory = ErrorCategory.FATAL,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.code,
            "message": self.message,
            "category": self.category.value,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class WorkerStartError(SsrBridgeError):
    """The render worker process could not be spawned."""

    def __init__(self, message: str, command: list[str] | None = None):
        super().__init__(
            message,
            code="WORKER_START_FAILED",
            category=ErrorCategory.FATAL,
            details={"command": list(command or [])},
        )


class WorkerExitedError(SsrBridgeError):
    """The render worker exited or its pipes broke while a call was pending."""

    def __init__(self, message: str, returncode: int | None = None, stderr: str = ""):
        super().__init__(
            message,
            code="WORKER_EXITED",
            category=ErrorCategory.RETRYABLE,
            details={"returncode": returncode, "stderr": stderr},
        )
        self.returncode = returncode
        self.stderr = stderr


class WorkerTimeoutError(SsrBridgeError):
    """No response arrived before the call deadline."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            f"Render worker did not respond within {timeout_seconds}s",
            code="WORKER_TIMEOUT",
            category=ErrorCategory.TIMEOUT,
            details={"timeout_seconds": timeout_seconds},
        )
        self.timeout_seconds = timeout_seconds


class FrameTooLargeError(SsrBridgeError):
    """A framed line would exceed the protocol line bound."""

    def __init__(self, size: int, limit: int):
        super().__init__(
            f"Frame of {size} bytes exceeds the {limit} byte line limit",
            code="FRAME_TOO_LARGE",
            category=ErrorCategory.VALIDATION,
            details={"size": size, "limit": limit},
        )
        self.size = size
        self.limit = limit


class FrameDecodeError(SsrBridgeError):
    """A tagged line did not carry a valid JSON document."""

    def __init__(self, message: str):
        super().__init__(message, code="FRAME_DECODE_ERROR", category=ErrorCategory.VALIDATION)


def error_message(exc: BaseException) -> str:
    """Message text of an exception, falling back to its class name."""
    if isinstance(exc, SsrBridgeError):
        return exc.message
    text = str(exc)
    return text or exc.__class__.__name__
