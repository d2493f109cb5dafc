"""
Custom Exceptions Module.

This module defines all custom exceptions used throughout the receipt
extraction system. The field extractors themselves never raise: these
exceptions belong to the recognition adapter and the expense form.

Exception Hierarchy:
    ReceiptScanError (base)
    ├── RecognitionError
    │   ├── UnsupportedImageError
    │   ├── RecognitionEngineUnavailableError
    │   ├── RecognitionProcessingError
    │   ├── RecognitionCancelledError
    │   └── SessionClosedError
    ├── EmptyTextResult
    └── ExpenseValidationError
"""

from typing import List


class ReceiptScanError(Exception):
    """
    Base exception for all receipt scanning errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# RECOGNITION ERRORS
# =============================================================================

class RecognitionError(ReceiptScanError):
    """Base exception for text recognition failures."""
    pass


class UnsupportedImageError(RecognitionError):
    """
    Raised when the input is not a supported image encoding.

    Example:
        >>> raise UnsupportedImageError("GIF", ["JPEG", "PNG", "WEBP"])
    """

    def __init__(self, image_format: str, supported_formats: list, reason: str = None):
        message = f"Unsupported image format: '{image_format}'"
        details = {"format": image_format, "supported_formats": supported_formats}
        if reason:
            details["reason"] = reason
        super().__init__(message, details)


class RecognitionEngineUnavailableError(RecognitionError):
    """Raised when the recognition engine cannot be initialized."""

    def __init__(self, engine_name: str, reason: str = None):
        message = f"Recognition engine not available: {engine_name}"
        details = {"engine": engine_name, "reason": reason}
        super().__init__(message, details)


class RecognitionProcessingError(RecognitionError):
    """Raised when the engine fails while recognizing an image."""

    def __init__(self, source: str, reason: str = None):
        message = f"Text recognition failed for: {source}"
        details = {"source": source, "reason": reason}
        super().__init__(message, details)


class RecognitionCancelledError(RecognitionError):
    """Raised when the caller cancels an in-flight recognition request."""

    def __init__(self, stage: str):
        message = "Text recognition cancelled"
        details = {"stage": stage}
        super().__init__(message, details)


class SessionClosedError(RecognitionError):
    """Raised when a released recognition session is used."""

    def __init__(self):
        super().__init__("Recognition session is closed")


# =============================================================================
# RESULT ERRORS
# =============================================================================

class EmptyTextResult(ReceiptScanError):
    """Raised when recognition succeeds but yields no usable text."""

    def __init__(self, confidence: float = 0.0):
        message = "No text detected in the image"
        details = {"confidence": confidence}
        super().__init__(message, details)


class ExpenseValidationError(ReceiptScanError):
    """
    Raised when an expense form cannot be finalized.

    Attributes:
        problems: One message per invalid or missing field.
    """

    def __init__(self, problems: List[str]):
        self.problems = list(problems)
        message = f"Expense validation failed ({len(self.problems)} problem(s))"
        super().__init__(message, {"problems": self.problems})


__all__ = [
    'ReceiptScanError',
    'RecognitionError',
    'UnsupportedImageError',
    'RecognitionEngineUnavailableError',
    'RecognitionProcessingError',
    'RecognitionCancelledError',
    'SessionClosedError',
    'EmptyTextResult',
    'ExpenseValidationError',
]
