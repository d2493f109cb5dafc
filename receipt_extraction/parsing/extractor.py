"""
Receipt Field Extractor Module.

This module provides the ReceiptFieldExtractor class that turns raw
recognized text into an ExtractedReceipt.

Approach:
    Raw text is split into normalized lines, then independent heuristic
    extractors read the merchant, date, time, amounts, items and tax.
    The total is resolved last from the sorted amounts.

The extractor never raises: empty or unreadable text yields a receipt
with every field at its empty default.
"""

from typing import Iterable, Optional, Sequence

from receipt_extraction.postprocessor.normalizers import DateNormalizer
from receipt_extraction.utils.logger import get_logger
from .extraction_result import ExtractedReceipt
from .field_extractors import (
    extract_amounts,
    extract_date,
    extract_items,
    extract_merchant,
    extract_tax,
    extract_time,
    normalize_lines,
    resolve_total_amount,
)
from .settings import ExtractionSettings

logger = get_logger(__name__)


class ReceiptFieldExtractor:
    """
    Heuristic receipt field extractor.

    Attributes:
        settings: Confidence weights, keyword tables and thresholds

    Example:
        >>> extractor = ReceiptFieldExtractor()
        >>> receipt = extractor.extract("STARBUCKS COFFEE\\nTotal Rp45.000")
        >>> receipt.merchant.value
        'STARBUCKS COFFEE'
        >>> receipt.total_amount.value.kind
        'total'
    """

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        locales: Optional[Iterable[str]] = None
    ) -> None:
        """
        Initialize the extractor.

        Args:
            settings: Explicit settings. If None, built from configuration.
            locales: Keyword locales, used only when settings is None.
        """
        self.settings = settings or ExtractionSettings.from_config(locales)
        self.date_normalizer = DateNormalizer()

        logger.debug(
            f"ReceiptFieldExtractor initialized "
            f"(scan_lines={self.settings.merchant_scan_lines}, "
            f"tax_keywords={list(self.settings.keywords.tax)})"
        )

    def extract(self, raw_text: Optional[str]) -> ExtractedReceipt:
        """
        Extract structured fields from recognized receipt text.

        Args:
            raw_text: Multi-line text from the recognizer.

        Returns:
            ExtractedReceipt with per-field confidence.
        """
        return self.extract_lines(normalize_lines(raw_text))

    def extract_lines(self, lines: Sequence[str]) -> ExtractedReceipt:
        """
        Extract structured fields from already normalized lines.

        Args:
            lines: Trimmed, non-empty lines in receipt order.

        Returns:
            ExtractedReceipt with per-field confidence.
        """
        lines = tuple(lines)
        settings = self.settings

        amounts = extract_amounts(lines, settings)

        receipt = ExtractedReceipt(
            merchant=extract_merchant(lines, settings),
            date=extract_date(lines, settings, self.date_normalizer),
            time=extract_time(lines, settings),
            amounts=amounts,
            total_amount=resolve_total_amount(amounts, settings),
            tax_amount=extract_tax(lines, settings),
            items=extract_items(lines, settings),
            lines=lines
        )

        logger.info(
            f"Extracted receipt from {len(lines)} lines: "
            f"{len(amounts)} amounts, {len(receipt.items)} items, "
            f"avg confidence {receipt.average_confidence:.2f}"
        )
        return receipt
