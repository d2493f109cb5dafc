"""
Receipt Scanning Pipeline.

The calling boundary between text recognition and field extraction:

    image → RecognitionSession → raw text → ReceiptFieldExtractor → ExpenseForm

Recognition failures never escape scan(). They are converted into a
user-facing Notification and a blank form for manual entry, so the
caller can always render an editable form.

Usage:
    from receipt_extraction.pipeline import ReceiptScanner

    with RecognitionSession() as session:
        outcome = ReceiptScanner(session).scan("receipt.jpg")

    if outcome.notification:
        print(outcome.notification.message)
    record = outcome.form.update(category="meals").finalize()
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from receipt_extraction.input_handler import ImageSource
from receipt_extraction.ocr_engine import CancellationToken, RecognitionSession
from receipt_extraction.ocr_engine.engine import ProgressCallback
from receipt_extraction.parsing import ExtractedReceipt, ReceiptFieldExtractor
from receipt_extraction.postprocessor.form import ExpenseForm
from receipt_extraction.utils.exceptions import (
    EmptyTextResult,
    RecognitionCancelledError,
    RecognitionEngineUnavailableError,
    RecognitionError,
    UnsupportedImageError,
)
from receipt_extraction.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

# User-facing messages
ENGINE_UNAVAILABLE_MESSAGE = "Failed to load OCR engine. Please check your internet connection."
INVALID_IMAGE_MESSAGE = "Invalid image format. Please use JPG, PNG, or WebP."
NO_TEXT_MESSAGE = "No text detected in the image. Please ensure the receipt is clear and well-lit."
RECOGNITION_FAILED_MESSAGE = "Failed to extract text from image."
MANUAL_ENTRY_HINT = " You can still manually enter the expense details."
CANCELLED_MESSAGE = "Receipt scan cancelled."


@dataclass(frozen=True)
class Notification:
    """A message for the user. ``level`` is "info", "warning" or "error"."""
    level: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'level': self.level, 'message': self.message}


@dataclass
class ScanOutcome:
    """
    Result of scanning one receipt.

    Attributes:
        success: True when text was recognized and extracted
        form: Editable expense form, blank on failure
        receipt: Extraction result, None on failure
        raw_text: Recognized text, "" on failure
        recognition_confidence: Recognizer confidence in [0, 1], None for text input
        notification: Message to show the user, if any
    """
    success: bool
    form: ExpenseForm
    receipt: Optional[ExtractedReceipt] = None
    raw_text: str = ""
    recognition_confidence: Optional[float] = None
    notification: Optional[Notification] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'success': self.success,
            'raw_text': self.raw_text,
            'recognition_confidence': self.recognition_confidence,
            'receipt': self.receipt.to_dict() if self.receipt else None,
            'form': self.form.to_dict(),
            'notification': self.notification.to_dict() if self.notification else None
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


def notification_for(error: Exception) -> Notification:
    """
    Map a recognition failure to the message shown to the user.

    Example:
        >>> notification_for(EmptyTextResult()).level
        'warning'
    """
    if isinstance(error, RecognitionCancelledError):
        return Notification('info', CANCELLED_MESSAGE)
    if isinstance(error, EmptyTextResult):
        return Notification('warning', NO_TEXT_MESSAGE + MANUAL_ENTRY_HINT)
    if isinstance(error, RecognitionEngineUnavailableError):
        return Notification('error', ENGINE_UNAVAILABLE_MESSAGE + MANUAL_ENTRY_HINT)
    if isinstance(error, UnsupportedImageError):
        return Notification('error', INVALID_IMAGE_MESSAGE + MANUAL_ENTRY_HINT)
    return Notification('error', RECOGNITION_FAILED_MESSAGE + MANUAL_ENTRY_HINT)


class ReceiptScanner:
    """
    Scans receipt images into pre-populated expense forms.

    Attributes:
        session: Recognition session owned by the caller, or None to
            open a short-lived session per scan
        extractor: Receipt field extractor

    Example:
        >>> scanner = ReceiptScanner()
        >>> outcome = scanner.scan_text("STARBUCKS COFFEE\\nTotal Rp45.000")
        >>> outcome.form.amount
        45000.0
    """

    def __init__(
        self,
        session: Optional[RecognitionSession] = None,
        extractor: Optional[ReceiptFieldExtractor] = None
    ) -> None:
        self.session = session
        self.extractor = extractor or ReceiptFieldExtractor()

    def scan(
        self,
        image: ImageSource,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> ScanOutcome:
        """
        Recognize and extract one receipt image.

        Args:
            image: File path, encoded bytes, or PIL Image.
            progress: Recognition progress callback, values in [0, 1].
            cancel_token: Cancels the in-flight recognition.

        Returns:
            ScanOutcome. Never raises for recognition failures.
        """
        try:
            if self.session is not None:
                result = self.session.recognize(image, progress, cancel_token)
            else:
                with RecognitionSession() as session:
                    result = session.recognize(image, progress, cancel_token)

            if result.is_empty():
                raise EmptyTextResult(result.confidence)

        except (RecognitionError, EmptyTextResult) as e:
            return self._failed(e)

        logger.info(f"Recognized {result.line_count} lines (confidence {result.confidence:.2f})")
        return self._extracted(result.text, result.confidence)

    def scan_text(self, raw_text: Optional[str]) -> ScanOutcome:
        """
        Extract an already recognized receipt text.

        Args:
            raw_text: Multi-line receipt text.

        Returns:
            ScanOutcome with recognition_confidence None.
        """
        if not raw_text or not raw_text.strip():
            return self._failed(EmptyTextResult())
        return self._extracted(raw_text, None)

    def _extracted(self, raw_text: str, confidence: Optional[float]) -> ScanOutcome:
        receipt = self.extractor.extract(raw_text)
        form = ExpenseForm.from_receipt(receipt, raw_text)

        logger.info(
            f"Fields found: merchant={form.merchant!r}, date={form.date or None}, "
            f"amount={form.amount} {form.currency}"
        )
        return ScanOutcome(
            success=True,
            form=form,
            receipt=receipt,
            raw_text=raw_text,
            recognition_confidence=confidence
        )

    def _failed(self, error: Exception) -> ScanOutcome:
        notification = notification_for(error)
        if notification.level == 'info':
            logger.info(f"Scan stopped: {error}")
        else:
            logger.warning(f"Scan failed: {error}")

        return ScanOutcome(
            success=False,
            form=ExpenseForm.blank(),
            notification=notification
        )
