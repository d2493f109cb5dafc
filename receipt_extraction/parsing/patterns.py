"""
Line Shape Patterns.

Named, independently testable predicates and matchers for the text
shapes found on receipts: names, dates, times, amounts, item lines
and tax lines. Keyword lists are passed in, never hard-coded here.

A numeric run only counts as a token when it stands alone: digits glued
to letters, to "/" or to a preceding "digit-" are fragments of dates,
codes or phone numbers, and digits followed by "/", ":" or "%" are
dates, times or rates.
"""

import re
from typing import Iterable, Iterator, List, NamedTuple, Optional, Tuple


# =============================================================================
# BUILDING BLOCKS
# =============================================================================

# Grouped ("45.000", "1,234,567.89") or plain ("45000", "12.50")
GROUPED_NUMBER = r'(?:\d{1,3}(?:[.,]\d{3})+(?:[.,]\d{1,2})?|\d+(?:[.,]\d{1,2})?)'

# Comma-grouped with dot decimal, as written in USD/SGD/MYR
COMMA_GROUPED_NUMBER = r'(?:\d{1,3}(?:,\d{3})+(?:\.\d{1,2})?|\d+(?:\.\d{1,2})?)'

NUMBER_START = r'(?<![\w.,/])(?<!\d-)'
NUMBER_END = r'(?![\w/:%]|[.,\-]\d)'

RUPIAH_PREFIX = r'Rp\.?\s*'


# =============================================================================
# MERCHANT / LINE CLASSIFICATION
# =============================================================================

ALL_CAPS_NAME = re.compile(r'[A-Z][A-Z\s&]{2,30}')
MIXED_CASE_NAME = re.compile(r'[A-Za-z][A-Za-z\s&.]{3,25}')
DATE_LINE = re.compile(r'\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}')
AMOUNT_LINE = re.compile(r'(?:Rp\.?\s*)?\d{1,3}(?:[.,]\d{3})*(?:[.,]\d{2})?')


def is_all_caps_name(line: str) -> bool:
    """3-31 chars of capitals, spaces and '&', starting with a capital."""
    return ALL_CAPS_NAME.fullmatch(line) is not None


def is_mixed_case_name(line: str) -> bool:
    """4-26 chars of letters, spaces, '&' and '.', starting with a letter."""
    return MIXED_CASE_NAME.fullmatch(line) is not None


def is_date_line(line: str) -> bool:
    """True if the line carries a D/D/Y-like token."""
    return DATE_LINE.search(line) is not None


def is_amount_line(line: str) -> bool:
    """True if the line carries a numeric token, separators allowed."""
    return AMOUNT_LINE.search(line) is not None


def contains_keyword(line: str, keywords: Iterable[str]) -> bool:
    """Case-insensitive substring test against a keyword list."""
    lowered = line.lower()
    return any(keyword in lowered for keyword in keywords)


# =============================================================================
# DATES AND TIMES
# =============================================================================

MONTH_ABBREVIATIONS = 'Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec'
MONTH_NAMES = (
    'January|February|March|April|May|June|July|August|'
    'September|October|November|December'
)


class DateMatch(NamedTuple):
    """A date token found on a line, split into its three components."""

    raw: str
    shape: str
    first: str
    second: str
    third: str


# Tried in this order on each line
DATE_SHAPES: List[Tuple[str, re.Pattern]] = [
    ('day_month_year', re.compile(r'(?<!\d)(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})(?!\d)')),
    ('year_month_day', re.compile(r'(?<!\d)(\d{2,4})[/\-](\d{1,2})[/\-](\d{1,2})(?!\d)')),
    ('day_month_abbr_year', re.compile(
        rf'(?<!\d)(\d{{1,2}})\s+({MONTH_ABBREVIATIONS})\s+(\d{{2,4}})(?!\d)', re.IGNORECASE
    )),
    ('day_month_name_year', re.compile(
        rf'(?<!\d)(\d{{1,2}})\s+({MONTH_NAMES})\s+(\d{{2,4}})(?!\d)', re.IGNORECASE
    )),
]

TIME_PATTERN = re.compile(
    r'(?<!\d)\d{1,2}:\d{2}(?::\d{2})?(?!\d)(?:\s*[AP]M\b)?',
    re.IGNORECASE
)


def find_date(line: str) -> Optional[DateMatch]:
    """
    Find the first date token on a line, trying shapes in priority order.

    Example:
        >>> find_date("25/12/2023 14:30").raw
        '25/12/2023'
        >>> find_date("Tanggal 2023-12-25").shape
        'year_month_day'
    """
    for shape, pattern in DATE_SHAPES:
        match = pattern.search(line)
        if match:
            return DateMatch(match.group(0), shape, *match.groups())
    return None


def find_time(line: str) -> Optional[str]:
    """Return the first H:MM[:SS] [AM|PM] token on a line."""
    match = TIME_PATTERN.search(line)
    return match.group(0).strip() if match else None


# =============================================================================
# AMOUNTS
# =============================================================================

class AmountToken(NamedTuple):
    """A monetary token: the raw text, its number part and its span."""

    raw: str
    number: str
    start: int
    end: int
    shape: str


# Currency-specific shapes come first; they win overlaps with the generic one
AMOUNT_SHAPES: List[Tuple[str, re.Pattern]] = [
    ('dollar_prefixed', re.compile(
        rf'\$\s*(?P<number>{COMMA_GROUPED_NUMBER}){NUMBER_END}'
    )),
    ('code_suffixed', re.compile(
        rf'{NUMBER_START}(?P<number>{COMMA_GROUPED_NUMBER})\s*(?:USD|SGD|MYR)\b',
        re.IGNORECASE
    )),
    ('grouped', re.compile(
        rf'{NUMBER_START}(?P<prefix>{RUPIAH_PREFIX})?(?P<number>{GROUPED_NUMBER}){NUMBER_END}',
        re.IGNORECASE
    )),
]


def is_bare_count(number: str, has_prefix: bool, min_bare_digits: int) -> bool:
    """
    True for short unmarked integers such as "No. 1" or "Qty 2".

    A number with a currency marker or a separator is never a bare count.
    """
    if has_prefix or ',' in number or '.' in number:
        return False
    return len(number) < min_bare_digits


def iter_amount_tokens(line: str, min_bare_digits: int = 3) -> Iterator[AmountToken]:
    """
    Yield every monetary token on a line, left to right.

    Example:
        >>> [t.raw for t in iter_amount_tokens("Total $12.50")]
        ['$12.50']
        >>> [t.number for t in iter_amount_tokens("2 x Rp 15.000 = Rp 30.000")]
        ['15.000', '30.000']
    """
    tokens: List[AmountToken] = []

    for shape, pattern in AMOUNT_SHAPES:
        for match in pattern.finditer(line):
            start, end = match.span()
            if any(start < kept.end and kept.start < end for kept in tokens):
                continue

            number = match.group('number')
            has_prefix = shape != 'grouped' or bool(match.groupdict().get('prefix'))
            if is_bare_count(number, has_prefix, min_bare_digits):
                continue

            tokens.append(AmountToken(match.group(0).strip(), number, start, end, shape))

    yield from sorted(tokens, key=lambda token: token.start)


# =============================================================================
# LINE ITEMS AND TAX
# =============================================================================

ITEM_LINE = re.compile(
    rf'(?P<name>.+?)\s+(?P<prefix>(?:{RUPIAH_PREFIX}|\$\s*))?(?P<number>{GROUPED_NUMBER})',
    re.IGNORECASE
)

RATE = r'(?:\(?\d{1,2}(?:[.,]\d+)?\s*%\)?\s*)?'


def match_item_line(line: str, min_bare_digits: int = 3) -> Optional[Tuple[str, str]]:
    """
    Match a whole line of the form "<name> <price>".

    Returns:
        (name, number) with the name trimmed, or None.

    Example:
        >>> match_item_line("Cappuccino Rp45.000")
        ('Cappuccino', '45.000')
    """
    match = ITEM_LINE.fullmatch(line)
    if not match:
        return None

    number = match.group('number')
    if is_bare_count(number, bool(match.group('prefix')), min_bare_digits):
        return None
    return match.group('name').strip(), number


def _keyword_alternation(keywords: Iterable[str]) -> str:
    escaped = sorted((re.escape(k) for k in keywords), key=len, reverse=True)
    return '|'.join(escaped)


def build_tax_patterns(keywords: Iterable[str]) -> List[re.Pattern]:
    """
    Compile the two symmetric tax shapes for a keyword list.

    "<keyword> [rate] [:] <number>" and "<number> <keyword>".
    """
    keywords = list(keywords)
    if not keywords:
        return []

    alternation = _keyword_alternation(keywords)
    keyword_first = re.compile(
        rf'\b(?:{alternation})\b\s*{RATE}:?\s*(?:{RUPIAH_PREFIX}|\$\s*)?'
        rf'(?P<number>{GROUPED_NUMBER}){NUMBER_END}',
        re.IGNORECASE
    )
    number_first = re.compile(
        rf'{NUMBER_START}(?:{RUPIAH_PREFIX}|\$\s*)?(?P<number>{GROUPED_NUMBER})\s*(?:{alternation})\b',
        re.IGNORECASE
    )
    return [keyword_first, number_first]


def find_tax(line: str, patterns: List[re.Pattern]) -> Optional[Tuple[str, str]]:
    """
    Find a tax token on a line.

    Returns:
        (raw match, number) or None.

    Example:
        >>> find_tax("TAX: Rp 5.000", build_tax_patterns(["tax"]))
        ('TAX: Rp 5.000', '5.000')
    """
    for pattern in patterns:
        match = pattern.search(line)
        if match:
            return match.group(0).strip(), match.group('number')
    return None
