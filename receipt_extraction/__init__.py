"""
Receipt Extraction System - Source Package.

This package turns photographed or scanned receipts into editable
expense forms. Each module has a single responsibility.

Modules:
    - input_handler: Receipt image loading and validation
    - ocr_engine: Text recognition sessions (Tesseract)
    - parsing: Heuristic receipt field extraction
    - postprocessor: Normalizers, validators and the expense form
    - pipeline: Recognition → extraction → form, with user notifications
    - utils: Logging, exceptions and helpers

Architecture:
    Image → Recognition → Field Extraction → Expense Form → Finalize
"""

__version__ = "1.0.0"

__all__ = [
    'input_handler',
    'ocr_engine',
    'parsing',
    'postprocessor',
    'pipeline',
    'utils'
]
