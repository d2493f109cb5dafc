"""
Data Validators Module.

This module provides validation functions for:
    - Date fields (ISO format, year range)
    - Amount fields
    - Complete expense forms before they are finalized
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from config import get_config
from receipt_extraction.utils.logger import get_logger
from .normalizers import Currency

# Initialize module logger
logger = get_logger(__name__)


class DateValidator:
    """
    Validates ISO dates (YYYY-MM-DD).

    Example:
        >>> validator = DateValidator()
        >>> validator.is_valid("2023-12-25")
        True
        >>> validator.validate("1999-12-31")
        (False, 'Year 1999 is too old')
    """

    DATE_FORMAT = "%Y-%m-%d"

    def __init__(self) -> None:
        """Initialize the date validator."""
        self.min_year = get_config("form.date.min_year", 2000)
        self.max_year = get_config("form.date.max_year", 2100)

    def is_valid(self, date_str: Optional[str]) -> bool:
        valid, _ = self.validate(date_str)
        return valid

    def validate(self, date_str: Optional[str]) -> Tuple[bool, str]:
        """
        Validate a date string with detailed feedback.

        Args:
            date_str: ISO date string to validate.

        Returns:
            Tuple of (is_valid, message).
        """
        if not date_str:
            return False, "Date is empty"

        try:
            parsed = datetime.strptime(date_str, self.DATE_FORMAT)
        except ValueError as e:
            return False, f"Invalid date format: {str(e)}"

        if parsed.year < self.min_year:
            return False, f"Year {parsed.year} is too old"
        if parsed.year > self.max_year:
            return False, f"Year {parsed.year} is too far in future"

        return True, "Valid date"


class AmountValidator:
    """
    Validates amount values.

    Example:
        >>> validator = AmountValidator()
        >>> validator.validate(45000.0)
        (True, 'Valid amount')
        >>> validator.validate(0, allow_zero=False)
        (False, 'Amount must be greater than zero')
    """

    MAX_AMOUNT = 1_000_000_000_000

    def is_valid(self, value: Any, allow_zero: bool = False) -> bool:
        valid, _ = self.validate(value, allow_zero)
        return valid

    def validate(self, value: Any, allow_zero: bool = False) -> Tuple[bool, str]:
        """
        Validate an amount with detailed feedback.

        Args:
            value: Number or numeric string.
            allow_zero: Accept 0 (tax) or require a positive value (total).

        Returns:
            Tuple of (is_valid, message).
        """
        if value is None or value == "":
            return False, "Amount is empty"

        try:
            amount = float(value)
        except (TypeError, ValueError):
            return False, f"Could not parse amount: {value}"

        if amount < 0:
            return False, "Amount cannot be negative"
        if amount == 0 and not allow_zero:
            return False, "Amount must be greater than zero"
        if amount > self.MAX_AMOUNT:
            return False, f"Amount {amount} exceeds maximum"

        return True, "Valid amount"


class ValidationResult:
    """
    Contains the result of validation checks.

    Attributes:
        is_valid: Overall validation result
        errors: List of error messages
        warnings: List of warning messages
        field_results: Per-field validation results
    """

    def __init__(self):
        self.is_valid = True
        self.errors: List[str] = []
        self.warnings: List[str] = []
        self.field_results: Dict[str, Tuple[bool, str]] = {}

    def add_error(self, message: str) -> None:
        """Add an error and mark as invalid."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning (doesn't affect validity)."""
        self.warnings.append(message)

    def add_field_result(self, field: str, is_valid: bool, message: str) -> None:
        """Add a field-level validation result."""
        self.field_results[field] = (is_valid, message)
        if not is_valid:
            self.add_error(f"{field}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'is_valid': self.is_valid,
            'errors': self.errors,
            'warnings': self.warnings,
            'field_results': self.field_results
        }


class ExpenseValidator:
    """
    Validates an expense form before it is finalized.

    Required: merchant, ISO date within the configured year range,
    amount > 0, a known currency and a known category. Tax is
    optional but must be >= 0 when given.

    Example:
        >>> result = ExpenseValidator().validate(form)
        >>> result.is_valid
        True
    """

    def __init__(self) -> None:
        """Initialize the expense validator."""
        self.categories = list(get_config("form.categories", {}).keys()) or [
            'meals', 'transport', 'accommodation', 'fuel', 'parking', 'office', 'other'
        ]
        self.currencies = get_config("form.currencies", [c.value for c in Currency])
        self.low_confidence_threshold = get_config("form.confidence_levels.medium", 0.6)

        self.date_validator = DateValidator()
        self.amount_validator = AmountValidator()

        logger.debug(f"ExpenseValidator initialized (categories: {self.categories})")

    def validate_merchant(self, value: Optional[str]) -> Tuple[bool, str]:
        if not value or not value.strip():
            return False, "Merchant is empty"
        return True, "Valid merchant"

    def validate_currency(self, value: Optional[str]) -> Tuple[bool, str]:
        if value not in self.currencies:
            return False, f"Unsupported currency: {value}"
        return True, "Valid currency"

    def validate_category(self, value: Optional[str]) -> Tuple[bool, str]:
        if not value:
            return False, "Category is empty"
        if value not in self.categories:
            return False, f"Unknown category: {value}"
        return True, "Valid category"

    def validate(self, form) -> ValidationResult:
        """
        Validate every field of an expense form.

        Args:
            form: ExpenseForm to check.

        Returns:
            ValidationResult listing every problem found.
        """
        result = ValidationResult()

        result.add_field_result('merchant', *self.validate_merchant(form.merchant))
        result.add_field_result('date', *self.date_validator.validate(form.date))
        result.add_field_result('amount', *self.amount_validator.validate(form.amount))
        if form.tax is not None and form.tax != "":
            result.add_field_result(
                'tax', *self.amount_validator.validate(form.tax, allow_zero=True)
            )
        result.add_field_result('currency', *self.validate_currency(form.currency))
        result.add_field_result('category', *self.validate_category(form.category))

        for field_name, confidence in form.confidence.items():
            if field_name in form.edited_fields:
                continue
            if 0 < confidence < self.low_confidence_threshold:
                result.add_warning(f"{field_name}: low confidence ({confidence:.2f})")

        return result
