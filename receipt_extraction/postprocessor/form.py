"""
Expense Form Module.

The editable model between an ExtractedReceipt and a finalized expense.
Extracted values are copied in together with their confidence; the user
may overwrite any of them, and finalize() validates the result into an
immutable ExpenseRecord.

Classes:
    ExpenseForm: Editable, pre-populated expense fields
    ExpenseRecord: Finalized expense handed to the caller

Functions:
    suggest_category: Category guess from the merchant name
    confidence_level: Badge level for a confidence score
"""

import json
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional, Set

from config import get_config
from receipt_extraction.parsing.extraction_result import ExtractedReceipt
from receipt_extraction.utils.exceptions import ExpenseValidationError
from receipt_extraction.utils.logger import get_logger
from .normalizers import Currency, DateNormalizer
from .validators import ExpenseValidator

# Initialize module logger
logger = get_logger(__name__)

DEFAULT_CATEGORY_KEYWORDS = {
    'meals': ['restaurant', 'cafe', 'food'],
    'accommodation': ['hotel', 'inn'],
    'transport': ['taxi', 'uber', 'grab'],
    'fuel': ['shell', 'pertamina', 'gas'],
}

# Fields that carry an extraction confidence
CONFIDENCE_FIELDS = ('merchant', 'date', 'time', 'amount', 'tax')

MANUAL_ENTRY_TEXT = "OCR processing failed. Please enter details manually."


def suggest_category(merchant_name: Optional[str]) -> str:
    """
    Guess an expense category from the merchant name.

    Keyword groups are checked in configuration order; the first group
    with a keyword contained in the name wins.

    Returns:
        Category key, or "" when nothing matches.

    Example:
        >>> suggest_category("Hotel Indonesia Kempinski")
        'accommodation'
        >>> suggest_category("STARBUCKS COFFEE")
        ''
    """
    if not merchant_name:
        return ""

    merchant = merchant_name.lower()
    keyword_groups = get_config("form.category_keywords", DEFAULT_CATEGORY_KEYWORDS)

    for category, keywords in keyword_groups.items():
        if any(keyword.lower() in merchant for keyword in keywords):
            return category
    return ""


def confidence_percentage(score: float) -> int:
    """Confidence as a whole percentage, rounding halves up."""
    return int(max(0.0, min(1.0, score)) * 100 + 0.5)


def confidence_level(score: float) -> str:
    """
    Badge level for a confidence score: "high", "medium" or "low".

    Example:
        >>> confidence_level(0.9), confidence_level(0.6), confidence_level(0.3)
        ('high', 'medium', 'low')
    """
    percentage = confidence_percentage(score)
    high = get_config("form.confidence_levels.high", 0.8)
    medium = get_config("form.confidence_levels.medium", 0.6)

    if percentage >= round(high * 100):
        return 'high'
    if percentage >= round(medium * 100):
        return 'medium'
    return 'low'


@dataclass(frozen=True)
class ExpenseRecord:
    """
    A finalized, validated expense.

    Attributes:
        merchant: Merchant name
        date: ISO date
        time: Time as printed, or ""
        amount: Total amount (> 0)
        currency: Currency of amount and tax
        tax: Tax amount (>= 0)
        category: Expense category key
        description: Free text
        raw_text: Recognized receipt text
    """
    merchant: str
    date: str
    time: str
    amount: float
    currency: Currency
    tax: float
    category: str
    description: str = ""
    raw_text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        result = asdict(self)
        result['currency'] = self.currency.value
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


@dataclass
class ExpenseForm:
    """
    Editable expense form, pre-populated from an extracted receipt.

    Attributes:
        merchant: Merchant name
        date: ISO date string
        time: Time string
        amount: Total amount, None when not detected
        currency: Currency code (IDR by default)
        tax: Tax amount, None when not detected
        category: Category key, "" when not chosen
        description: Free text
        raw_text: Recognized receipt text
        confidence: Per-field confidence for CONFIDENCE_FIELDS
        edited_fields: Fields overwritten by the user

    Example:
        >>> form = ExpenseForm.from_receipt(receipt)
        >>> form.update(category="meals")
        >>> record = form.finalize()
    """
    merchant: str = ""
    date: str = ""
    time: str = ""
    amount: Optional[float] = None
    currency: str = Currency.IDR.value
    tax: Optional[float] = None
    category: str = ""
    description: str = ""
    raw_text: str = ""
    confidence: Dict[str, float] = field(
        default_factory=lambda: {name: 0.0 for name in CONFIDENCE_FIELDS}
    )
    edited_fields: Set[str] = field(default_factory=set)

    @classmethod
    def blank(cls, raw_text: str = MANUAL_ENTRY_TEXT) -> 'ExpenseForm':
        """Empty form for manual entry."""
        return cls(raw_text=raw_text)

    @classmethod
    def from_receipt(
        cls,
        receipt: ExtractedReceipt,
        raw_text: Optional[str] = None
    ) -> 'ExpenseForm':
        """
        Copy extracted values and confidences into a new form.

        Args:
            receipt: Extractor output.
            raw_text: Recognized text. Defaults to the receipt's lines.

        Returns:
            Pre-populated ExpenseForm with a suggested category.
        """
        total = receipt.total_amount
        tax = receipt.tax_amount

        form = cls(
            merchant=receipt.merchant.value or "",
            date=receipt.date.value or "",
            time=receipt.time.value or "",
            amount=total.value.value if total else None,
            currency=total.value.currency.value if total else Currency.IDR.value,
            tax=tax.value.value if tax else None,
            category=suggest_category(receipt.merchant.value),
            raw_text=raw_text if raw_text is not None else '\n'.join(receipt.lines),
            confidence={
                'merchant': receipt.merchant.confidence,
                'date': receipt.date.confidence,
                'time': receipt.time.confidence,
                'amount': total.confidence if total else 0.0,
                'tax': tax.confidence if tax else 0.0
            }
        )

        logger.debug(f"Expense form populated: {form.merchant!r}, amount={form.amount}")
        return form

    def update(self, **values: Any) -> 'ExpenseForm':
        """
        Overwrite fields with user input.

        Overwritten fields are marked as edited and their confidence
        becomes 1.0. A typed date such as "25 Dec 2023" is stored in ISO
        form when it can be parsed, and as typed otherwise.

        Raises:
            ValueError: If a name is not an editable field.
        """
        editable = {f.name for f in fields(self)} - {'confidence', 'edited_fields'}

        unknown = set(values) - editable
        if unknown:
            raise ValueError(f"Unknown expense field(s): {sorted(unknown)}")

        for name, value in values.items():
            if name == 'date' and value:
                value = DateNormalizer().normalize(str(value)) or value
            setattr(self, name, value)
            self.edited_fields.add(name)
            if name in CONFIDENCE_FIELDS:
                self.confidence[name] = 1.0

        return self

    def confidence_badges(self) -> Dict[str, Dict[str, Any]]:
        """Percentage and level per field, as shown next to the inputs."""
        return {
            name: {
                'percentage': confidence_percentage(score),
                'level': confidence_level(score)
            }
            for name, score in self.confidence.items()
        }

    def finalize(self, validator: Optional[ExpenseValidator] = None) -> ExpenseRecord:
        """
        Validate the form and produce the finalized expense.

        Returns:
            Immutable ExpenseRecord.

        Raises:
            ExpenseValidationError: Listing every invalid or missing field.
        """
        validator = validator or ExpenseValidator()
        result = validator.validate(self)

        for warning in result.warnings:
            logger.warning(f"Finalizing with {warning}")

        if not result.is_valid:
            raise ExpenseValidationError(result.errors)

        return ExpenseRecord(
            merchant=self.merchant.strip(),
            date=self.date,
            time=self.time or "",
            amount=float(self.amount),
            currency=Currency.from_code(self.currency),
            tax=float(self.tax) if self.tax not in (None, "") else 0.0,
            category=self.category,
            description=self.description or "",
            raw_text=self.raw_text or ""
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary format."""
        result = {f.name: getattr(self, f.name) for f in fields(self)}
        result['confidence'] = dict(self.confidence)
        result['edited_fields'] = sorted(self.edited_fields)
        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
