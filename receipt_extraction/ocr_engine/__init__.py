"""
OCR Engine Module for the Receipt Extraction System.

This module provides the text recognition adapter:
    - Explicitly owned recognition sessions
    - Progress reporting and cancellation
    - Word bounding boxes grouped into lines
    - Overall confidence in [0, 1]

Supported backends:
    - Tesseract (pytesseract)
"""

from .recognition_result import OCRLine, OCRWord, RecognitionResult
from .tesseract_backend import TesseractBackend
from .engine import CancellationToken, ProgressReporter, RecognitionSession, describe_progress

__all__ = [
    'RecognitionSession',
    'CancellationToken',
    'ProgressReporter',
    'describe_progress',
    'TesseractBackend',
    'RecognitionResult',
    'OCRWord',
    'OCRLine',
]
