"""
Receipt Field Extractors.

One pure function per field. Each takes the normalized receipt lines
and returns a result with a confidence score; none of them raises or
keeps state between calls. Only the total resolver depends on another
extractor's output (the sorted amounts).
"""

from functools import lru_cache
from typing import List, Optional, Sequence, Tuple

from receipt_extraction.postprocessor.normalizers import (
    AmountNormalizer,
    DateNormalizer,
    detect_currency,
)
from receipt_extraction.utils.logger import get_logger
from .extraction_result import (
    ASSUMED_TOTAL,
    TOTAL,
    FieldResult,
    LineItem,
    MonetaryAmount,
    TotalAmount,
)
from .patterns import (
    build_tax_patterns,
    contains_keyword,
    find_date,
    find_tax,
    find_time,
    is_all_caps_name,
    is_amount_line,
    is_date_line,
    is_mixed_case_name,
    iter_amount_tokens,
    match_item_line,
)
from .settings import ExtractionSettings

logger = get_logger(__name__)

_amount_normalizer = AmountNormalizer()


def _settings(settings: Optional[ExtractionSettings]) -> ExtractionSettings:
    return settings if settings is not None else ExtractionSettings.from_config()


def normalize_lines(raw_text: Optional[str]) -> Tuple[str, ...]:
    """
    Split recognizer output into trimmed, non-empty lines.

    Example:
        >>> normalize_lines("  STARBUCKS \\n\\n Total Rp45.000 ")
        ('STARBUCKS', 'Total Rp45.000')
    """
    if not raw_text:
        return ()
    return tuple(line.strip() for line in raw_text.splitlines() if line.strip())


def extract_merchant(
    lines: Sequence[str],
    settings: Optional[ExtractionSettings] = None
) -> FieldResult:
    """
    Pick the merchant name from the top of the receipt.

    The first of the leading lines shaped like a business name wins.
    Otherwise the first line is returned with low confidence.
    """
    settings = _settings(settings)

    for index, line in enumerate(lines[:settings.merchant_scan_lines]):
        if not (is_all_caps_name(line) or is_mixed_case_name(line)):
            continue
        if is_date_line(line) or is_amount_line(line):
            continue
        logger.debug(f"Merchant found on line {index}: {line!r}")
        return FieldResult(line, settings.weights.merchant_match, line, line)

    first_line = lines[0] if lines else ""
    return FieldResult(first_line, settings.weights.merchant_fallback, first_line, first_line)


def extract_date(
    lines: Sequence[str],
    settings: Optional[ExtractionSettings] = None,
    date_normalizer: Optional[DateNormalizer] = None
) -> FieldResult:
    """
    Find the first date token and normalize it to ISO format.

    The raw token and its confidence are kept even when the token
    does not form a valid calendar date.
    """
    settings = _settings(settings)
    date_normalizer = date_normalizer or DateNormalizer()

    for line in lines:
        match = find_date(line)
        if match is None:
            continue

        if match.shape == 'day_month_year':
            parsed = date_normalizer.from_numeric(match.first, match.second, match.third)
        elif match.shape == 'year_month_day':
            parsed = date_normalizer.from_numeric(
                match.first, match.second, match.third, year_first=True
            )
        else:
            parsed = date_normalizer.from_month_name(match.first, match.second, match.third)

        logger.debug(f"Date token {match.raw!r} ({match.shape}) -> {parsed}")
        return FieldResult(parsed, settings.weights.date, line, match.raw)

    return FieldResult.empty()


def extract_time(
    lines: Sequence[str],
    settings: Optional[ExtractionSettings] = None
) -> FieldResult:
    """Return the first H:MM[:SS] [AM|PM] token, as printed."""
    settings = _settings(settings)

    for line in lines:
        token = find_time(line)
        if token:
            return FieldResult(token, settings.weights.time, line, token)

    return FieldResult.empty()


def extract_amounts(
    lines: Sequence[str],
    settings: Optional[ExtractionSettings] = None
) -> Tuple[MonetaryAmount, ...]:
    """
    Collect every monetary token on the receipt.

    Returns:
        Amounts sorted by value, largest first. Equal values keep
        their reading order.
    """
    settings = _settings(settings)
    amounts: List[MonetaryAmount] = []

    for index, line in enumerate(lines):
        for token in iter_amount_tokens(line, settings.min_bare_digits):
            value = _amount_normalizer.normalize(token.raw)
            if value <= 0:
                continue
            amounts.append(MonetaryAmount(
                raw_token=token.raw,
                value=value,
                currency=detect_currency(token.raw, settings.default_currency),
                source_line_index=index,
                source_line=line
            ))

    # sorted() is stable, ties keep discovery order
    return tuple(sorted(amounts, key=lambda amount: amount.value, reverse=True))


def extract_items(
    lines: Sequence[str],
    settings: Optional[ExtractionSettings] = None
) -> Tuple[LineItem, ...]:
    """Read "<name> <price>" lines, skipping header and total lines."""
    settings = _settings(settings)
    keywords = settings.keywords
    items: List[LineItem] = []

    for index, line in enumerate(lines):
        matched = match_item_line(line, settings.min_bare_digits)
        if matched is None:
            continue
        if contains_keyword(line, keywords.header) or contains_keyword(line, keywords.total_line):
            continue

        name, number = matched
        amount = _amount_normalizer.normalize(number)
        if len(name) > 2 and amount > 0:
            items.append(LineItem(name, amount, index, line))

    return tuple(items)


def resolve_total_amount(
    amounts: Sequence[MonetaryAmount],
    settings: Optional[ExtractionSettings] = None
) -> Optional[FieldResult]:
    """
    Decide which amount is the receipt total.

    Args:
        amounts: Output of extract_amounts (sorted, largest first).

    Returns:
        The largest amount on a total-keyword line; failing that the
        largest amount overall; None when there are no amounts.
    """
    settings = _settings(settings)
    if not amounts:
        return None

    for amount in amounts:
        if contains_keyword(amount.source_line, settings.keywords.total_amount):
            return FieldResult(
                TotalAmount(amount, TOTAL),
                settings.weights.total_keyword,
                amount.source_line,
                amount.raw_token
            )

    largest = amounts[0]
    logger.debug(f"No total keyword found, assuming largest amount {largest.value}")
    return FieldResult(
        TotalAmount(largest, ASSUMED_TOTAL),
        settings.weights.total_assumed,
        largest.source_line,
        largest.raw_token
    )


@lru_cache(maxsize=16)
def _tax_patterns(keywords: Tuple[str, ...]):
    return build_tax_patterns(keywords)


def extract_tax(
    lines: Sequence[str],
    settings: Optional[ExtractionSettings] = None
) -> Optional[FieldResult]:
    """
    Find the first tax line.

    Returns:
        FieldResult holding a MonetaryAmount, or None when the receipt
        has no tax line at all.
    """
    settings = _settings(settings)
    patterns = _tax_patterns(tuple(settings.keywords.tax))

    for index, line in enumerate(lines):
        found = find_tax(line, patterns)
        if found is None:
            continue

        raw, number = found
        amount = MonetaryAmount(
            raw_token=raw,
            value=_amount_normalizer.normalize(number),
            currency=detect_currency(raw, settings.default_currency),
            source_line_index=index,
            source_line=line
        )
        return FieldResult(amount, settings.weights.tax, line, raw)

    return None
