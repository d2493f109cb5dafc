"""
Tesseract Recognition Backend.

This module provides text recognition using Tesseract (pytesseract).
It extracts words with bounding boxes and groups them into lines.

Features:
    - Word-level bounding boxes and confidence scores
    - Line grouping by Tesseract block/paragraph/line numbers
    - Configurable Tesseract parameters and timeout

Requirements:
    - Tesseract OCR installed on the system
    - pytesseract Python package
"""

import time
from typing import Any, Dict, List, Optional, Tuple

import pytesseract
from PIL import Image

from config import get_config
from receipt_extraction.utils.exceptions import (
    RecognitionEngineUnavailableError,
    RecognitionProcessingError,
)
from receipt_extraction.utils.logger import get_logger
from .recognition_result import OCRLine, OCRWord, RecognitionResult

# Initialize module logger
logger = get_logger(__name__)


class TesseractBackend:
    """
    Tesseract recognition backend implementation.

    Attributes:
        language: Tesseract language code (e.g., "eng")
        psm: Page Segmentation Mode (1-13)
        oem: OCR Engine Mode (0-3)
        extra_config: Additional Tesseract configuration
        timeout: Seconds before a recognition call is aborted, 0 for none

    Example:
        >>> backend = TesseractBackend()
        >>> result = backend.extract(image)
        >>> print(result.text)
    """

    name = "tesseract"

    def __init__(
        self,
        language: Optional[str] = None,
        psm: Optional[int] = None,
        oem: Optional[int] = None,
        extra_config: Optional[str] = None,
        timeout: Optional[float] = None
    ) -> None:
        """
        Initialize the Tesseract backend.

        Arguments left as None are read from configuration.

        Raises:
            RecognitionEngineUnavailableError: If Tesseract is not installed.
        """
        self.language = language or get_config("ocr.tesseract.lang", "eng")
        self.psm = psm if psm is not None else get_config("ocr.tesseract.psm", 6)
        self.oem = oem if oem is not None else get_config("ocr.tesseract.oem", 3)
        self.extra_config = (
            extra_config if extra_config is not None
            else get_config("ocr.tesseract.config", "")
        )
        self.timeout = timeout if timeout is not None else get_config("ocr.tesseract.timeout", 0)

        self.version = self._check_binary()

        logger.debug(
            f"TesseractBackend initialized (lang={self.language}, "
            f"psm={self.psm}, oem={self.oem}, timeout={self.timeout})"
        )

    def _check_binary(self) -> str:
        """
        Check that the Tesseract binary is reachable.

        Raises:
            RecognitionEngineUnavailableError: If Tesseract is not installed.
        """
        try:
            version = str(pytesseract.get_tesseract_version())
        except (pytesseract.TesseractNotFoundError, OSError) as e:
            raise RecognitionEngineUnavailableError(
                "tesseract", f"not installed or not in PATH: {e}"
            )
        logger.info(f"Tesseract version: {version}")
        return version

    def _build_config(self) -> str:
        """Build the Tesseract command line configuration string."""
        config_parts = [f"--psm {self.psm}", f"--oem {self.oem}"]
        if self.extra_config:
            config_parts.append(self.extra_config)
        return ' '.join(config_parts)

    def extract(self, image: Image.Image) -> RecognitionResult:
        """
        Recognize words and lines in an image.

        Args:
            image: PIL Image to process.

        Returns:
            RecognitionResult containing words and lines.

        Raises:
            RecognitionProcessingError: If Tesseract fails or times out.
        """
        start_time = time.time()

        if image.mode != 'RGB':
            image = image.convert('RGB')

        image_width, image_height = image.size
        config = self._build_config()

        logger.debug(f"Running Tesseract (config: {config})")
        try:
            data = pytesseract.image_to_data(
                image,
                lang=self.language,
                config=config,
                timeout=self.timeout,
                output_type=pytesseract.Output.DICT
            )
        except (pytesseract.TesseractError, RuntimeError) as e:
            # pytesseract signals timeouts with RuntimeError
            logger.error(f"Tesseract failed: {e}")
            raise RecognitionProcessingError("image", str(e))

        words = self._parse_tesseract_output(data)
        lines = self._group_into_lines(words)

        processing_time = time.time() - start_time

        result = RecognitionResult(
            words=words,
            lines=lines,
            image_width=image_width,
            image_height=image_height,
            language=self.language,
            engine=self.name,
            processing_time=processing_time,
            metadata={
                'psm': self.psm,
                'oem': self.oem,
                'tesseract_version': self.version
            }
        )

        logger.info(
            f"Recognition completed: {result.word_count} words, "
            f"{result.line_count} lines, "
            f"confidence: {result.confidence:.2f} ({processing_time:.2f}s)"
        )
        return result

    def _parse_tesseract_output(self, data: Dict[str, List[Any]]) -> List[OCRWord]:
        """
        Parse Tesseract output into OCRWord objects.

        Empty entries and zero-sized boxes are skipped; Tesseract's
        -1 confidence for non-word elements becomes 0.
        """
        words = []

        for i, text in enumerate(data['text']):
            if not text or not text.strip():
                continue

            x, y = int(data['left'][i]), int(data['top'][i])
            w, h = int(data['width'][i]), int(data['height'][i])
            if w <= 0 or h <= 0:
                continue

            conf = max(0.0, float(data['conf'][i]))
            line_key = (
                int(data['block_num'][i]),
                int(data['par_num'][i]),
                int(data['line_num'][i])
            )

            words.append(OCRWord(
                text=text.strip(),
                bbox=(x, y, x + w, y + h),
                confidence=conf,
                word_index=len(words),
                line_key=line_key
            ))

        return words

    def _group_into_lines(self, words: List[OCRWord]) -> List[OCRLine]:
        """
        Group words into lines by their (block, paragraph, line) key.

        Lines keep Tesseract's reading order; words within a line are
        sorted left to right.
        """
        line_groups: Dict[Tuple[int, int, int], List[OCRWord]] = {}
        for word in words:
            line_groups.setdefault(word.line_key, []).append(word)

        lines = []
        for line_index, key in enumerate(sorted(line_groups)):
            line_words = sorted(line_groups[key], key=lambda w: w.x1)
            line = OCRLine(words=line_words, line_index=line_index)
            line.compute_bbox()
            lines.append(line)

        return lines
