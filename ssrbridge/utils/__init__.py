"""Utility functions for ssrbridge."""

from ssrbridge.utils.exceptions import (
    ErrorCategory,
    FrameDecodeError,
    FrameTooLargeError,
    SsrBridgeError,
    WorkerExitedError,
    WorkerStartError,
    WorkerTimeoutError,
    error_message,
)

__all__ = [
    "ErrorCategory",
    "FrameDecodeError",
    "FrameTooLargeError",
    "SsrBridgeError",
    "WorkerExitedError",
    "WorkerStartError",
    "WorkerTimeoutError",
    "error_message",
]
