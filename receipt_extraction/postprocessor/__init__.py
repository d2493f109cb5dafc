"""
Post-Processing Module for the Receipt Extraction System.

This module provides functionality for:
    - Amount normalization and currency detection
    - Date normalization and validation
    - Expense form validation

The expense form model lives in ``receipt_extraction.postprocessor.form``.
"""

from .normalizers import AmountNormalizer, Currency, DateNormalizer, detect_currency
from .validators import AmountValidator, DateValidator, ExpenseValidator, ValidationResult

__all__ = [
    'AmountNormalizer',
    'DateNormalizer',
    'Currency',
    'detect_currency',
    'DateValidator',
    'AmountValidator',
    'ExpenseValidator',
    'ValidationResult',
]
