"""
Extraction Settings Module.

Confidence weights and per-locale keyword tables used by the field
extractors. Both are loaded from configuration so heuristics can be
tuned without touching the extractors.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from config import get_config
from receipt_extraction.postprocessor.normalizers import Currency
from receipt_extraction.utils.helpers import clamp_unit
from receipt_extraction.utils.logger import get_logger

logger = get_logger(__name__)


DEFAULT_CONFIDENCE = {
    'merchant_match': 0.8,
    'merchant_fallback': 0.3,
    'date': 0.9,
    'time': 0.8,
    'total_keyword': 0.9,
    'total_assumed': 0.6,
    'tax': 0.8,
}

DEFAULT_KEYWORDS = {
    'en': {
        'header': ['receipt', 'invoice', 'bill'],
        'total_line': ['total', 'grand total', 'subtotal'],
        'total_amount': ['total', 'grand total', 'amount'],
        'tax': ['tax'],
    },
    'id': {
        'header': ['struk', 'nota'],
        'total_line': ['jumlah'],
        'total_amount': ['jumlah', 'total bayar'],
        'tax': ['ppn', 'pajak'],
    },
}

KEYWORD_GROUPS = ('header', 'total_line', 'total_amount', 'tax')


@dataclass(frozen=True)
class ConfidenceWeights:
    """
    Heuristic confidence constants, each clamped into [0, 1].

    These are not calibrated probabilities.
    """

    merchant_match: float = 0.8
    merchant_fallback: float = 0.3
    date: float = 0.9
    time: float = 0.8
    total_keyword: float = 0.9
    total_assumed: float = 0.6
    tax: float = 0.8

    def __post_init__(self):
        for name in DEFAULT_CONFIDENCE:
            object.__setattr__(self, name, clamp_unit(getattr(self, name)))

    @classmethod
    def from_config(cls) -> 'ConfidenceWeights':
        configured = get_config("extraction.confidence", {}) or {}
        values = {
            name: configured.get(name, default)
            for name, default in DEFAULT_CONFIDENCE.items()
        }
        return cls(**values)


@dataclass(frozen=True)
class KeywordTable:
    """
    Lower-case keyword lists for the active locales.

    Attributes:
        header: Words marking header lines ("receipt", "struk").
        total_line: Words marking total/subtotal lines.
        total_amount: Words marking the line holding the grand total.
        tax: Tax keywords.
    """

    header: Tuple[str, ...] = ()
    total_line: Tuple[str, ...] = ()
    total_amount: Tuple[str, ...] = ()
    tax: Tuple[str, ...] = ()

    @classmethod
    def for_locales(
        cls,
        locales: Iterable[str],
        tables: Optional[Dict[str, Dict[str, List[str]]]] = None
    ) -> 'KeywordTable':
        """
        Merge the keyword tables of several locales, in locale order.

        Args:
            locales: Locale codes, e.g. ["en", "id"].
            tables: Locale -> group -> keywords. Defaults to configuration.

        Returns:
            KeywordTable with duplicates removed.
        """
        if tables is None:
            tables = get_config("extraction.keywords", DEFAULT_KEYWORDS) or DEFAULT_KEYWORDS

        merged: Dict[str, List[str]] = {group: [] for group in KEYWORD_GROUPS}
        for locale in locales:
            table = tables.get(locale)
            if table is None:
                logger.warning(f"No keyword table for locale '{locale}'")
                continue
            for group in KEYWORD_GROUPS:
                for keyword in table.get(group, []) or []:
                    keyword = str(keyword).strip().lower()
                    if keyword and keyword not in merged[group]:
                        merged[group].append(keyword)

        return cls(**{group: tuple(words) for group, words in merged.items()})


@dataclass(frozen=True)
class ExtractionSettings:
    """
    Everything the field extractors can be tuned with.

    Example:
        >>> settings = ExtractionSettings.from_config()
        >>> settings.weights.date
        0.9
        >>> ExtractionSettings.from_config(locales=["en"]).keywords.tax
        ('tax',)
    """

    weights: ConfidenceWeights = field(default_factory=ConfidenceWeights)
    keywords: KeywordTable = field(
        default_factory=lambda: KeywordTable.for_locales(['en', 'id'], DEFAULT_KEYWORDS)
    )
    merchant_scan_lines: int = 5
    min_bare_digits: int = 3
    default_currency: Currency = Currency.IDR

    @classmethod
    def from_config(cls, locales: Optional[Iterable[str]] = None) -> 'ExtractionSettings':
        """
        Build settings from configuration.

        Args:
            locales: Locale codes overriding ``extraction.locales``.
        """
        if locales is None:
            locales = get_config("extraction.locales", ['en', 'id'])
        locales = list(locales)

        settings = cls(
            weights=ConfidenceWeights.from_config(),
            keywords=KeywordTable.for_locales(locales),
            merchant_scan_lines=int(get_config("extraction.merchant_scan_lines", 5)),
            min_bare_digits=int(get_config("extraction.min_bare_digits", 3)),
            default_currency=Currency.from_code(get_config("extraction.default_currency", "IDR")),
        )
        logger.debug(f"Extraction settings loaded (locales={locales})")
        return settings
