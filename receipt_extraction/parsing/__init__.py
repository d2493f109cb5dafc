"""
Receipt Parsing Module.

Heuristic extraction of structured fields from recognized receipt text.

Features:
    - Line normalization
    - Merchant, date, time, amount, item and tax extractors
    - Total-amount resolution
    - Per-field confidence scores
    - Locale keyword tables from configuration
"""

from .extraction_result import (
    ExtractedReceipt,
    FieldResult,
    LineItem,
    MonetaryAmount,
    TotalAmount,
)
from .settings import ConfidenceWeights, ExtractionSettings, KeywordTable
from .extractor import ReceiptFieldExtractor

__all__ = [
    'ReceiptFieldExtractor',
    'ExtractedReceipt',
    'FieldResult',
    'LineItem',
    'MonetaryAmount',
    'TotalAmount',
    'ConfidenceWeights',
    'ExtractionSettings',
    'KeywordTable',
]
