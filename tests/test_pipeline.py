import json
from unittest.mock import MagicMock, patch

import pytest

from receipt_extraction.ocr_engine import CancellationToken, OCRLine, OCRWord, RecognitionResult
from receipt_extraction.pipeline import (
    CANCELLED_MESSAGE,
    ENGINE_UNAVAILABLE_MESSAGE,
    INVALID_IMAGE_MESSAGE,
    MANUAL_ENTRY_HINT,
    NO_TEXT_MESSAGE,
    RECOGNITION_FAILED_MESSAGE,
    Notification,
    ReceiptScanner,
    notification_for,
)
from receipt_extraction.postprocessor.form import MANUAL_ENTRY_TEXT
from receipt_extraction.utils.exceptions import (
    EmptyTextResult,
    RecognitionCancelledError,
    RecognitionEngineUnavailableError,
    RecognitionProcessingError,
    SessionClosedError,
    UnsupportedImageError,
)


def recognized(text, confidence=88.0):
    """RecognitionResult with one word per line."""
    lines = []
    words = []
    for index, line_text in enumerate(text.splitlines()):
        word = OCRWord(line_text, (0, index * 20, 200, index * 20 + 15), confidence, index)
        words.append(word)
        lines.append(OCRLine([word], word.bbox, index))
    return RecognitionResult(words=words, lines=lines, engine="fake")


class TestScanText:
    """Test extraction from already recognized text."""

    def test_scan_text(self, starbucks_text):
        """Test a successful text scan."""
        outcome = ReceiptScanner().scan_text(starbucks_text)

        assert outcome.success
        assert outcome.notification is None
        assert outcome.recognition_confidence is None
        assert outcome.raw_text == starbucks_text
        assert outcome.receipt.merchant.value == "STARBUCKS COFFEE"
        assert outcome.form.amount == 45000.0
        assert outcome.form.raw_text == starbucks_text

    @pytest.mark.parametrize("raw_text", ["", "   \n ", None])
    def test_empty_text(self, raw_text):
        """Test that empty text gives a manual-entry form and a warning."""
        outcome = ReceiptScanner().scan_text(raw_text)

        assert not outcome.success
        assert outcome.receipt is None
        assert outcome.form.raw_text == MANUAL_ENTRY_TEXT
        assert outcome.notification == Notification('warning', NO_TEXT_MESSAGE + MANUAL_ENTRY_HINT)

    def test_to_json(self, starbucks_text):
        """Test outcome serialization."""
        data = json.loads(ReceiptScanner().scan_text(starbucks_text).to_json())
        assert data['success'] is True
        assert data['form']['merchant'] == "STARBUCKS COFFEE"
        assert data['receipt']['total_amount']['value']['value'] == 45000.0
        assert data['notification'] is None


class TestScanImage:
    """Test scanning through a recognition session."""

    def test_scan_with_session(self, starbucks_text, png_bytes):
        """Test that recognized text flows into the form."""
        session = MagicMock()
        session.recognize.return_value = recognized(starbucks_text)
        token = CancellationToken()
        progress = MagicMock()

        outcome = ReceiptScanner(session).scan(png_bytes, progress, token)

        session.recognize.assert_called_once_with(png_bytes, progress, token)
        assert outcome.success
        assert outcome.recognition_confidence == pytest.approx(0.88)
        assert outcome.raw_text == starbucks_text
        assert outcome.form.date == "2023-12-25"
        assert outcome.form.confidence['amount'] == 0.9

    def test_empty_recognition_result(self, png_bytes):
        """Test that an image with no text becomes a warning."""
        session = MagicMock()
        session.recognize.return_value = RecognitionResult()

        outcome = ReceiptScanner(session).scan(png_bytes)

        assert not outcome.success
        assert outcome.notification.level == 'warning'
        assert outcome.notification.message.startswith(NO_TEXT_MESSAGE)

    @pytest.mark.parametrize(
        ("error", "level", "message"),
        [
            (RecognitionEngineUnavailableError("tesseract", "missing"), 'error',
             ENGINE_UNAVAILABLE_MESSAGE + MANUAL_ENTRY_HINT),
            (UnsupportedImageError("GIF", ["JPEG", "PNG", "WEBP"]), 'error',
             INVALID_IMAGE_MESSAGE + MANUAL_ENTRY_HINT),
            (RecognitionProcessingError("image", "engine crashed"), 'error',
             RECOGNITION_FAILED_MESSAGE + MANUAL_ENTRY_HINT),
            (SessionClosedError(), 'error', RECOGNITION_FAILED_MESSAGE + MANUAL_ENTRY_HINT),
            (RecognitionCancelledError("queued"), 'info', CANCELLED_MESSAGE),
        ],
    )
    def test_recognition_failures(self, png_bytes, error, level, message):
        """Test that each failure becomes a notification and a blank form."""
        session = MagicMock()
        session.recognize.side_effect = error

        outcome = ReceiptScanner(session).scan(png_bytes)

        assert not outcome.success
        assert outcome.notification == Notification(level, message)
        assert outcome.form.raw_text == MANUAL_ENTRY_TEXT
        assert outcome.form.amount is None

    def test_other_errors_propagate(self, png_bytes):
        """Test that programming errors are not turned into notifications."""
        session = MagicMock()
        session.recognize.side_effect = KeyError("bug")

        with pytest.raises(KeyError):
            ReceiptScanner(session).scan(png_bytes)

    def test_scan_without_session_opens_one(self, starbucks_text, png_bytes):
        """Test that a short-lived session is opened and closed per scan."""
        with patch("receipt_extraction.pipeline.RecognitionSession") as session_cls:
            session = session_cls.return_value.__enter__.return_value
            session.recognize.return_value = recognized(starbucks_text)

            outcome = ReceiptScanner().scan(png_bytes)

        assert outcome.success
        session_cls.return_value.__exit__.assert_called_once()

    def test_engine_start_failure_without_session(self, png_bytes):
        """Test the notification when the engine cannot be opened."""
        with patch("receipt_extraction.pipeline.RecognitionSession") as session_cls:
            session_cls.return_value.__enter__.side_effect = RecognitionEngineUnavailableError(
                "tesseract", "missing"
            )
            outcome = ReceiptScanner().scan(png_bytes)

        assert outcome.notification.message.startswith(ENGINE_UNAVAILABLE_MESSAGE)


class TestNotificationFor:
    """Test the error-to-message mapping."""

    def test_empty_text_is_a_warning(self):
        """Test the level for an image without text."""
        assert notification_for(EmptyTextResult(0.1)).level == 'warning'

    def test_unknown_error_is_generic(self):
        """Test the fallback message."""
        notification = notification_for(RuntimeError("x"))
        assert notification.message == RECOGNITION_FAILED_MESSAGE + MANUAL_ENTRY_HINT

    def test_to_dict(self):
        """Test notification serialization."""
        assert Notification('info', CANCELLED_MESSAGE).to_dict() == {
            'level': 'info', 'message': CANCELLED_MESSAGE
        }
