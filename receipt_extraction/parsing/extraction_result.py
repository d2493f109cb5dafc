"""
Extraction Result Data Classes.

This module defines the structures produced by the receipt field
extractor. All of them are frozen: a result is built once and handed
to the presentation layer, which copies values into an editable form.

Classes:
    FieldResult: A value paired with confidence and evidence
    MonetaryAmount: A parsed amount with currency and source line
    TotalAmount: The amount chosen as the receipt total
    LineItem: A purchased item line
    ExtractedReceipt: The complete extraction output
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Optional, Tuple, TypeVar

from receipt_extraction.postprocessor.normalizers import Currency
from receipt_extraction.utils.helpers import clamp_unit

T = TypeVar('T')

TOTAL = 'total'
ASSUMED_TOTAL = 'assumed_total'


def _serialize(value: Any) -> Any:
    if hasattr(value, 'to_dict'):
        return value.to_dict()
    return value


@dataclass(frozen=True)
class MonetaryAmount:
    """
    A monetary token found on a receipt line.

    Attributes:
        raw_token: Token exactly as printed, currency marker included
        value: Parsed non-negative value
        currency: Detected currency
        source_line_index: Index of the line in the normalized lines
        source_line: The line itself
    """
    raw_token: str
    value: float
    currency: Currency = Currency.IDR
    source_line_index: int = 0
    source_line: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'raw': self.raw_token,
            'value': self.value,
            'currency': self.currency.value,
            'line_index': self.source_line_index,
            'line': self.source_line
        }


@dataclass(frozen=True)
class TotalAmount:
    """
    The amount resolved as the receipt total.

    ``kind`` is "total" when the amount sits on a keyword line and
    "assumed_total" when it was picked only for being the largest.
    """
    amount: MonetaryAmount
    kind: str = TOTAL

    @property
    def value(self) -> float:
        return self.amount.value

    @property
    def currency(self) -> Currency:
        return self.amount.currency

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        result = self.amount.to_dict()
        result['type'] = self.kind
        return result


@dataclass(frozen=True)
class LineItem:
    """A purchased item: a name (longer than 2 chars) and a positive price."""
    name: str
    amount: float
    source_line_index: int = 0
    source_line: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'name': self.name,
            'amount': self.amount,
            'line_index': self.source_line_index,
            'line': self.source_line
        }


@dataclass(frozen=True)
class FieldResult(Generic[T]):
    """
    An extracted value with its confidence and supporting evidence.

    A field with no match has ``value`` None and ``confidence`` 0.

    Attributes:
        value: Normalized value, or None
        confidence: Heuristic score in [0, 1]
        evidence_line: Line the value came from, or ""
        raw: Matched text before normalization, or ""

    Example:
        >>> FieldResult("2023-12-25", 0.9, "25/12/2023 14:30", "25/12/2023").found
        True
        >>> FieldResult.empty().confidence
        0.0
    """
    value: Optional[T] = None
    confidence: float = 0.0
    evidence_line: str = ""
    raw: str = ""

    def __post_init__(self):
        object.__setattr__(self, 'confidence', clamp_unit(self.confidence))

    @classmethod
    def empty(cls) -> 'FieldResult':
        """A field with no match."""
        return cls()

    @property
    def found(self) -> bool:
        return self.value is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        return {
            'value': _serialize(self.value),
            'confidence': self.confidence,
            'line': self.evidence_line,
            'raw': self.raw
        }


@dataclass(frozen=True)
class ExtractedReceipt:
    """
    Complete output of the receipt field extractor.

    Attributes:
        merchant: Merchant name (always present, possibly low confidence)
        date: ISO date, raw token kept in ``date.raw``
        time: Time string as printed
        amounts: All monetary amounts, sorted by value descending
        total_amount: Resolved total, None when no amount was found
        tax_amount: Tax amount, None when no tax line was found
        items: Line items in receipt order
        lines: The normalized lines everything was extracted from

    Example:
        >>> receipt = ReceiptFieldExtractor().extract(raw_text)
        >>> receipt.merchant.value
        'STARBUCKS COFFEE'
        >>> receipt.total_amount.value.value
        45000.0
    """
    merchant: FieldResult = field(default_factory=lambda: FieldResult("", 0.0))
    date: FieldResult = field(default_factory=FieldResult)
    time: FieldResult = field(default_factory=FieldResult)
    amounts: Tuple[MonetaryAmount, ...] = ()
    total_amount: Optional[FieldResult] = None
    tax_amount: Optional[FieldResult] = None
    items: Tuple[LineItem, ...] = ()
    lines: Tuple[str, ...] = ()

    @property
    def confidence_scores(self) -> Dict[str, float]:
        """Per-field confidence, 0 for absent fields."""
        return {
            'merchant': self.merchant.confidence,
            'date': self.date.confidence,
            'time': self.time.confidence,
            'amount': self.total_amount.confidence if self.total_amount else 0.0,
            'tax': self.tax_amount.confidence if self.tax_amount else 0.0
        }

    @property
    def average_confidence(self) -> float:
        """Average confidence across the fields that were found."""
        found = [
            result.confidence
            for result in (self.merchant, self.date, self.time, self.total_amount, self.tax_amount)
            if result is not None and result.found and result.value != ""
        ]
        if not found:
            return 0.0
        return sum(found) / len(found)

    @property
    def is_empty(self) -> bool:
        """True when nothing at all could be read."""
        return not self.lines

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert to dictionary format.

        Returns:
            Dictionary representation of the extracted receipt.
        """
        return {
            'merchant': self.merchant.to_dict(),
            'date': self.date.to_dict(),
            'time': self.time.to_dict(),
            'amounts': [amount.to_dict() for amount in self.amounts],
            'total_amount': self.total_amount.to_dict() if self.total_amount else None,
            'tax_amount': self.tax_amount.to_dict() if self.tax_amount else None,
            'items': [item.to_dict() for item in self.items],
            'confidence_scores': self.confidence_scores,
            'average_confidence': self.average_confidence
        }

    def to_json(self, indent: int = 2) -> str:
        """
        Convert to JSON string.

        Args:
            indent: JSON indentation level.

        Returns:
            JSON string representation.
        """
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def __repr__(self) -> str:
        total = self.total_amount.value.value if self.total_amount else None
        return (
            f"ExtractedReceipt("
            f"merchant={self.merchant.value!r}, "
            f"date={self.date.value}, "
            f"total={total}, "
            f"items={len(self.items)})"
        )
