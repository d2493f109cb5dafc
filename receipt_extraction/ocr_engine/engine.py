"""
Recognition Session Module.

This module provides the RecognitionSession class, the text recognition
adapter used in front of the receipt field extractor. A session is an
explicitly owned resource: the caller opens it, recognizes one or more
images, and closes it.

Usage:
    from receipt_extraction.ocr_engine import RecognitionSession

    with RecognitionSession() as session:
        result = session.recognize("receipt.jpg", progress=print)

    print(result.text, result.confidence)

Concurrent recognize() calls on one session are queued behind a lock.
Independent sessions share nothing.
"""

import threading
from typing import Callable, Optional

from config import get_config
from receipt_extraction.input_handler import ImageLoader, ImageSource
from receipt_extraction.utils.exceptions import (
    RecognitionCancelledError,
    SessionClosedError,
)
from receipt_extraction.utils.helpers import clamp_unit
from receipt_extraction.utils.logger import get_logger
from .recognition_result import RecognitionResult
from .tesseract_backend import TesseractBackend

# Initialize module logger
logger = get_logger(__name__)

ProgressCallback = Callable[[float], None]

# Progress stages
ENGINE_READY = 0.1
IMAGE_VALIDATED = 0.2
TEXT_RECOGNIZED = 0.9
DONE = 1.0


def describe_progress(value: float) -> str:
    """
    Status text for a progress value.

    Example:
        >>> describe_progress(0.5)
        'Extracting text... 50%'
    """
    value = clamp_unit(value)
    if value < 0.2:
        return "Loading OCR engine..."
    if value < 0.5:
        return "Analyzing image..."
    if value < 0.9:
        return f"Extracting text... {int(value * 100 + 0.5)}%"
    return "Processing results..."


class CancellationToken:
    """
    Cooperative cancellation flag for one recognition request.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> token.cancelled
        True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation. Safe to call from any thread."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, stage: str) -> None:
        """
        Raise if cancellation was requested.

        Raises:
            RecognitionCancelledError: If the token was cancelled.
        """
        if self.cancelled:
            raise RecognitionCancelledError(stage)


class ProgressReporter:
    """
    Progress channel that only ever moves forward within [0, 1].

    Values are clamped, and a value lower than the last one reported
    is dropped.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self.callback = callback
        self.value = 0.0

    def report(self, value: float) -> None:
        value = clamp_unit(value)
        if value < self.value:
            return
        self.value = value
        if self.callback is not None:
            self.callback(value)


class RecognitionSession:
    """
    Lifecycle-scoped text recognition adapter.

    Supported Backends:
        - tesseract: Tesseract OCR via pytesseract

    Attributes:
        backend_name: Name of the configured backend
        backend: The backend instance, None until the session is opened
        loader: Image loader validating and preparing input images

    Example:
        >>> session = RecognitionSession().open()
        >>> try:
        ...     result = session.recognize(image_bytes)
        ... finally:
        ...     session.close()
    """

    # Supported backend engines
    SUPPORTED_BACKENDS = ['tesseract']

    def __init__(
        self,
        backend: Optional[object] = None,
        loader: Optional[ImageLoader] = None,
        backend_name: Optional[str] = None
    ) -> None:
        """
        Create a session. No engine is started until open().

        Args:
            backend: Ready backend instance exposing extract(image).
                If None, one is created from configuration on open().
            loader: Image loader. If None, a configured ImageLoader.
            backend_name: Backend to create. If None, uses configuration.
        """
        self.backend_name = backend_name or get_config("ocr.engine", "tesseract")
        if self.backend_name == "pytesseract":
            self.backend_name = "tesseract"

        self.backend = backend
        self.loader = loader or ImageLoader()
        self._lock = threading.Lock()
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> 'RecognitionSession':
        """
        Start the recognition engine.

        Returns:
            The session itself, for chaining.

        Raises:
            RecognitionEngineUnavailableError: If the engine cannot start.
        """
        with self._lock:
            if self._open:
                return self
            if self.backend is None:
                self.backend = self._initialize_backend()
            self._open = True

        logger.info(f"Recognition session opened with backend: {self.backend_name}")
        return self

    def close(self) -> None:
        """Release the engine. Further recognize() calls fail."""
        with self._lock:
            if not self._open:
                return
            self._open = False
            self.backend = None

        logger.info("Recognition session closed")

    def __enter__(self) -> 'RecognitionSession':
        return self.open()

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def _initialize_backend(self):
        """
        Create the configured backend.

        Raises:
            RecognitionEngineUnavailableError: If the backend cannot start.
        """
        if self.backend_name not in self.SUPPORTED_BACKENDS:
            logger.warning(
                f"Unknown backend '{self.backend_name}', falling back to tesseract"
            )
            self.backend_name = "tesseract"
        return TesseractBackend()

    def recognize(
        self,
        image: ImageSource,
        progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> RecognitionResult:
        """
        Recognize the text of a receipt image.

        Args:
            image: File path, encoded bytes, or PIL Image.
            progress: Called with values in [0, 1] that never decrease.
            cancel_token: Checked between stages.

        Returns:
            RecognitionResult with text and confidence in [0, 1].

        Raises:
            SessionClosedError: If the session is not open.
            UnsupportedImageError: If the image is not JPEG, PNG or WebP.
            RecognitionProcessingError: If the engine fails.
            RecognitionCancelledError: If cancel_token was cancelled.
        """
        reporter = ProgressReporter(progress)
        token = cancel_token or CancellationToken()

        with self._lock:
            if not self._open:
                raise SessionClosedError()

            token.raise_if_cancelled("queued")
            reporter.report(ENGINE_READY)

            prepared, metadata = self.loader.load(image)
            token.raise_if_cancelled("image_validated")
            reporter.report(IMAGE_VALIDATED)

            result = self.backend.extract(prepared)
            token.raise_if_cancelled("text_recognized")
            reporter.report(TEXT_RECOGNIZED)

        result.metadata.setdefault('source', metadata.get('source'))
        reporter.report(DONE)
        return result
