"""
Data Normalizers Module.

This module provides normalization functions for:
    - Monetary tokens (thousands/decimal separator disambiguation)
    - Currency detection
    - Date components and free-form date strings

Every function here is total: bad input normalizes to 0 or None,
it never raises.
"""

import re
from datetime import date, datetime
from enum import Enum
from typing import Optional

from dateutil import parser as date_parser

from config import get_config
from receipt_extraction.utils.logger import get_logger

logger = get_logger(__name__)


class Currency(str, Enum):
    """Currencies recognized on receipts. IDR is the system default."""

    IDR = "IDR"
    USD = "USD"
    SGD = "SGD"
    MYR = "MYR"

    @classmethod
    def from_code(cls, code: Optional[str], default: 'Currency' = None) -> 'Currency':
        """Look up a currency by its code, falling back to ``default`` (IDR)."""
        try:
            return cls(str(code).upper())
        except ValueError:
            return default or cls.IDR


# Substrings checked in order; first hit wins
CURRENCY_MARKERS = (
    (Currency.IDR, ('rp', 'idr')),
    (Currency.USD, ('$', 'usd')),
    (Currency.SGD, ('sgd',)),
    (Currency.MYR, ('myr',)),
)


def detect_currency(raw_token: str, default: Currency = Currency.IDR) -> Currency:
    """
    Detect the currency of a raw (un-normalized) amount token.

    Args:
        raw_token: Token exactly as matched on the receipt line.
        default: Currency used when no marker is present.

    Returns:
        Detected Currency.

    Example:
        >>> detect_currency("Rp45.000")
        <Currency.IDR: 'IDR'>
        >>> detect_currency("12.50 SGD")
        <Currency.SGD: 'SGD'>
    """
    lowered = (raw_token or '').lower()
    for currency, markers in CURRENCY_MARKERS:
        if any(marker in lowered for marker in markers):
            return currency
    return default


class AmountNormalizer:
    """
    Normalizes monetary tokens to float values.

    Receipts mix Indonesian grouping ("45.000", "1.234,56") with US
    grouping ("1,234.56"), so separators are resolved by position and
    by the length of the trailing digit group.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.normalize("Rp45.000")
        45000.0
        >>> normalizer.normalize("1,234.56")
        1234.56
        >>> normalizer.normalize("1.234,56")
        1234.56
    """

    CURRENCY_PATTERN = re.compile(r'rp\.?|idr|usd|sgd|myr|\$', re.IGNORECASE)

    def normalize(self, amount_str: str) -> float:
        """
        Normalize an amount token to a float.

        Args:
            amount_str: Raw amount token, optionally with currency marker.

        Returns:
            Parsed value, or 0.0 when the token is empty or unparsable.
        """
        if not amount_str:
            return 0.0

        cleaned = self._clean_amount_string(amount_str)
        if not cleaned:
            logger.debug(f"Could not parse amount: {amount_str!r}")
            return 0.0

        cleaned = self._resolve_separators(cleaned)

        try:
            return float(cleaned)
        except ValueError:
            logger.debug(f"Could not parse amount: {amount_str!r}")
            return 0.0

    def _clean_amount_string(self, amount_str: str) -> str:
        """
        Strip currency markers and whitespace.

        Returns an empty string if anything other than digits and
        separators is left over.
        """
        cleaned = self.CURRENCY_PATTERN.sub('', amount_str)
        cleaned = re.sub(r'\s+', '', cleaned)

        if not re.fullmatch(r'[\d,.]+', cleaned):
            return ''
        return cleaned

    def _resolve_separators(self, amount_str: str) -> str:
        """
        Turn a grouped digit string into a float-parsable string.

        Args:
            amount_str: Digits with "," and/or "." separators.

        Returns:
            Digit string with at most one "." decimal point.
        """
        has_comma = ',' in amount_str
        has_dot = '.' in amount_str

        if has_comma and has_dot:
            # The separator that appears last is the decimal one
            if amount_str.rfind(',') > amount_str.rfind('.'):
                return amount_str.replace('.', '').replace(',', '.')
            return amount_str.replace(',', '')

        if has_comma:
            head, _, tail = amount_str.rpartition(',')
            if 1 <= len(tail) <= 2:
                return f"{head.replace(',', '')}.{tail}"
            return amount_str.replace(',', '')

        if has_dot:
            head, _, tail = amount_str.rpartition('.')
            single_dot = amount_str.count('.') == 1
            if 1 <= len(tail) <= 2 or (single_dot and len(tail) > 3):
                return f"{head.replace('.', '')}.{tail}"
            return amount_str.replace('.', '')

        return amount_str

    def is_valid_amount(self, amount_str: str) -> bool:
        """Check whether a token normalizes to a positive amount."""
        return self.normalize(amount_str) > 0


class DateNormalizer:
    """
    Normalizes dates to ISO format (YYYY-MM-DD).

    Receipt tokens are handed over already split into components.
    Free-form strings typed by a user go through explicit formats
    first and dateutil second. Both paths are day-first and never
    consult the clock.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.from_numeric("25", "12", "2023")
        '2023-12-25'
        >>> normalizer.from_month_name("5", "January", "24")
        '2024-01-05'
        >>> normalizer.normalize("25 December 2023")
        '2023-12-25'
    """

    MONTH_NUMBERS = {
        'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
        'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12,
    }

    # Fills components dateutil cannot find, instead of today's date
    DEFAULT_DATE = datetime(2000, 1, 1)

    def __init__(self) -> None:
        """Initialize the date normalizer with configuration."""
        self.input_formats = get_config(
            "form.date.input_formats",
            [
                "%Y-%m-%d",
                "%d/%m/%Y",
                "%d-%m-%Y",
                "%d.%m.%Y",
                "%d %b %Y",
                "%d %B %Y",
                "%m/%d/%Y",
            ]
        )

    @staticmethod
    def expand_year(year: str) -> int:
        """Expand a two-digit year by prefixing "20"."""
        year = year.strip()
        if len(year) == 2:
            year = '20' + year
        return int(year)

    def _build_date(self, year: int, month: int, day: int) -> Optional[date]:
        """Build a calendar date, or None if it does not exist in that year."""
        try:
            candidate = date(year, month, day)
        except ValueError:
            return None

        if candidate.year != year:
            return None
        return candidate

    def from_numeric(
        self,
        first: str,
        second: str,
        third: str,
        year_first: bool = False
    ) -> Optional[str]:
        """
        Normalize a numeric date token split into its three groups.

        Day-then-month is tried first; month-then-day is only used
        when the day-first reading is not a real calendar date.

        Args:
            first: First digit group.
            second: Second digit group.
            third: Third digit group.
            year_first: True for Y-M-D tokens.

        Returns:
            ISO date string or None.
        """
        try:
            if year_first:
                year = self.expand_year(first)
                readings = [(int(second), int(third))]
            else:
                year = self.expand_year(third)
                readings = [
                    (int(second), int(first)),
                    (int(first), int(second)),
                ]
        except ValueError:
            return None

        for month, day in readings:
            parsed = self._build_date(year, month, day)
            if parsed is not None:
                return parsed.isoformat()

        logger.debug(f"Could not normalize date: {first}/{second}/{third}")
        return None

    def from_month_name(self, day: str, month_name: str, year: str) -> Optional[str]:
        """
        Normalize a "D Month Y" token.

        Args:
            day: Day digits.
            month_name: English month name or abbreviation.
            year: Year digits (two or four).

        Returns:
            ISO date string or None.
        """
        month = self.MONTH_NUMBERS.get(month_name[:3].lower())
        try:
            expanded = self.expand_year(year)
            day_number = int(day)
        except ValueError:
            return None

        if month is None:
            return self._try_dateutil_parser(f"{day} {month_name} {expanded}", expanded)

        parsed = self._build_date(expanded, month, day_number)
        return parsed.isoformat() if parsed else None

    def normalize(self, date_str: str) -> Optional[str]:
        """
        Normalize a free-form date string.

        Args:
            date_str: Input date string in any recognized format.

        Returns:
            ISO date string, or None if parsing fails.
        """
        if not date_str or not date_str.strip():
            return None

        cleaned = self._clean_date_string(date_str)

        for fmt in self.input_formats:
            try:
                return datetime.strptime(cleaned, fmt).date().isoformat()
            except ValueError:
                continue

        return self._try_dateutil_parser(cleaned)

    def _clean_date_string(self, date_str: str) -> str:
        """Collapse whitespace and drop ordinal suffixes (1st, 2nd, ...)."""
        date_str = ' '.join(date_str.split())
        date_str = re.sub(r'(\d+)(st|nd|rd|th)\b', r'\1', date_str, flags=re.IGNORECASE)
        return date_str.strip()

    def _try_dateutil_parser(
        self,
        date_str: str,
        expected_year: Optional[int] = None
    ) -> Optional[str]:
        """
        Parse with dateutil, day-first, against a fixed default date.

        Args:
            date_str: Date string to parse.
            expected_year: Reject results whose year differs.

        Returns:
            ISO date string or None.
        """
        try:
            parsed = date_parser.parse(
                date_str,
                dayfirst=True,
                default=self.DEFAULT_DATE
            )
        except (ValueError, OverflowError):
            logger.debug(f"Could not parse date: {date_str!r}")
            return None

        if expected_year is not None and parsed.year != expected_year:
            return None
        return parsed.date().isoformat()
